"""
Sikka request helpers
"""

import json
import re
from datetime import date
from typing import Optional, Dict, Any, List

from dentalhub.core.exceptions import ValidationError

# Cache TTLs in seconds
CACHE_TTL_SHORT = 5 * 60
CACHE_TTL_MEDIUM = 30 * 60
CACHE_TTL_LONG = 24 * 60 * 60

DEFAULT_LIMIT = 50
MAX_LIMIT = 200

DATE_FIELDS = ("startdate", "enddate", "first_visit", "last_visit")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def prepare_request_params(
    params: Optional[Dict[str, Any]] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> Dict[str, Any]:
    """Merge sorting and pagination into the query and drop None values"""
    request_params = dict(params or {})

    if sort_by:
        request_params["sort_by"] = sort_by
        request_params["sort_order"] = sort_order or "asc"

    if page:
        request_params["page"] = page
    if limit:
        request_params["limit"] = min(limit, MAX_LIMIT)
    if offset:
        request_params["offset"] = offset

    return {k: v for k, v in request_params.items() if v is not None}


def generate_cache_key(endpoint: str, params: Optional[Dict[str, Any]] = None) -> str:
    """Stable key: endpoint plus params sorted by name"""
    ordered = json.dumps(params or {}, sort_keys=True, default=str, separators=(",", ":"))
    return f"sikka:{endpoint}-{ordered}"


def is_valid_date_format(value: str) -> bool:
    """True for a real calendar date written yyyy-mm-dd"""
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def validate_request_params(params: Dict[str, Any], required_fields: Optional[List[str]] = None) -> None:
    """
    Check required fields and date formats

    Raises:
        ValidationError: a required field is empty or a date is malformed
    """
    for field in required_fields or []:
        if not params.get(field):
            raise ValidationError(f"Missing required field: {field}", field=field)

    for field in DATE_FIELDS:
        if params.get(field) and not is_valid_date_format(params[field]):
            raise ValidationError(f"Invalid date format for {field}. Expected yyyy-mm-dd", field=field)
