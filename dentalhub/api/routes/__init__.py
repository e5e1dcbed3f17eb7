"""API Routes"""

from . import (
    agents,
    appointments,
    auth,
    calls,
    campaigns,
    dashboard,
    health,
    insurance,
    marketing,
    patients,
    practices,
    procedure_codes,
    sikka,
    staff,
    webhooks,
)

__all__ = [
    "agents",
    "appointments",
    "auth",
    "calls",
    "campaigns",
    "dashboard",
    "health",
    "insurance",
    "marketing",
    "patients",
    "practices",
    "procedure_codes",
    "sikka",
    "staff",
    "webhooks",
]
