"""
Shared field types
"""

from datetime import datetime, timezone
from typing import Annotated
from pydantic import AfterValidator


def to_naive_utc(value: datetime) -> datetime:
    """Store every timestamp as naive UTC"""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


UTCDateTime = Annotated[datetime, AfterValidator(to_naive_utc)]
