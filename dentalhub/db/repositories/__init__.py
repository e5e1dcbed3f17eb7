"""Per-aggregate repositories"""

from dentalhub.db.repositories.practice import PracticeRepository
from dentalhub.db.repositories.patient import PatientRepository
from dentalhub.db.repositories.appointment import AppointmentRepository
from dentalhub.db.repositories.staff import StaffRepository
from dentalhub.db.repositories.campaign import CampaignRepository
from dentalhub.db.repositories.procedure import ProcedureRepository
from dentalhub.db.repositories.call import CallRepository, EventRepository

__all__ = [
    "PracticeRepository",
    "PatientRepository",
    "AppointmentRepository",
    "StaffRepository",
    "CampaignRepository",
    "ProcedureRepository",
    "CallRepository",
    "EventRepository",
]
