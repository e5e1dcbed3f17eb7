"""Data models for DentalHub"""

from .practice import (
    Practice,
    PracticeCreate,
    PracticeUpdate,
    PracticeSettings,
    PracticeAPIKey,
    APIKeyCreate,
    PracticeContext,
)
from .patient import (
    Patient,
    PatientCreate,
    PatientUpdate,
    PatientSearch,
    PatientStatus,
    PatientRelationship,
    FamilyMemberCreate,
    FamilyMember,
)
from .appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentUpdate,
    AppointmentFilters,
    AppointmentStatus,
    AppointmentReminder,
)
from .staff import StaffProfile, StaffCreate, StaffUpdate, StaffRole, StaffStatus
from .campaign import (
    Campaign,
    CampaignCreate,
    CampaignUpdate,
    CampaignFilters,
    CampaignType,
    CampaignStatus,
    CampaignMetrics,
    CampaignMetricsUpdate,
    CampaignAnalytics,
)
from .procedure import ProcedureCode, ProcedureCategory, FeeSchedule, FeeUpdate, ProcedureSyncResult
from .call import (
    CallRecord,
    CallRequest,
    CallStatus,
    CallPurpose,
    CallPriority,
    CallConfig,
    TranscriptSegment,
)
from .auth import LoginRequest, RefreshRequest, AuthSession, AuthenticatedUser, UserMetadataUpdate
from .webhook import WebhookEvent, WebhookAck, parse_webhook_event
from .dashboard import PracticeOverview
from .insurance import (
    InsuranceVerificationRequest,
    EligibilityRequest,
    BenefitsRequest,
    ClaimSubmission,
    ClaimStatusUpdate,
    InsuranceEvent,
)

__all__ = [
    "Practice",
    "PracticeCreate",
    "PracticeUpdate",
    "PracticeSettings",
    "PracticeAPIKey",
    "APIKeyCreate",
    "PracticeContext",
    "Patient",
    "PatientCreate",
    "PatientUpdate",
    "PatientSearch",
    "PatientStatus",
    "PatientRelationship",
    "FamilyMemberCreate",
    "FamilyMember",
    "Appointment",
    "AppointmentCreate",
    "AppointmentUpdate",
    "AppointmentFilters",
    "AppointmentStatus",
    "AppointmentReminder",
    "StaffProfile",
    "StaffCreate",
    "StaffUpdate",
    "StaffRole",
    "StaffStatus",
    "Campaign",
    "CampaignCreate",
    "CampaignUpdate",
    "CampaignFilters",
    "CampaignType",
    "CampaignStatus",
    "CampaignMetrics",
    "CampaignMetricsUpdate",
    "CampaignAnalytics",
    "ProcedureCode",
    "ProcedureCategory",
    "FeeSchedule",
    "FeeUpdate",
    "ProcedureSyncResult",
    "CallRecord",
    "CallRequest",
    "CallStatus",
    "CallPurpose",
    "CallPriority",
    "CallConfig",
    "TranscriptSegment",
    "LoginRequest",
    "RefreshRequest",
    "AuthSession",
    "AuthenticatedUser",
    "UserMetadataUpdate",
    "WebhookEvent",
    "WebhookAck",
    "parse_webhook_event",
    "PracticeOverview",
    "InsuranceVerificationRequest",
    "EligibilityRequest",
    "BenefitsRequest",
    "ClaimSubmission",
    "ClaimStatusUpdate",
    "InsuranceEvent",
]
