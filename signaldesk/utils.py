"""
SignalDesk - Request Utilities
Safe parsing helpers for request parameters
"""
import re
from datetime import datetime, timezone


def safe_int(value, default=0, min_val=None, max_val=None):
    """
    Safely parse an integer from a request parameter.

    Args:
        value: The value to parse (string or None)
        default: Default value if parsing fails
        min_val: Minimum allowed value (optional)
        max_val: Maximum allowed value (optional)

    Returns:
        int: Parsed integer or default
    """
    try:
        result = int(value) if value is not None else default
    except (ValueError, TypeError):
        result = default

    if min_val is not None:
        result = max(result, min_val)
    if max_val is not None:
        result = min(result, max_val)

    return result


def safe_float(value, default=0.0, min_val=None, max_val=None):
    """
    Safely parse a float from a request parameter.
    """
    try:
        result = float(value) if value is not None else default
    except (ValueError, TypeError):
        result = default

    if min_val is not None:
        result = max(result, min_val)
    if max_val is not None:
        result = min(result, max_val)

    return result


def safe_bool(value, default=False):
    """
    Safely parse a boolean from a request parameter.
    Accepts: true, false, 1, 0, yes, no (case insensitive)
    """
    if value is None:
        return default

    if isinstance(value, bool):
        return value

    if isinstance(value, str):
        return value.lower() in ('true', '1', 'yes', 'on')

    return bool(value)


def get_page_params(request, default_limit=10, max_limit=50):
    """
    Page-based pagination from the query string.

    Returns:
        tuple: (page, limit) with page >= 1 and 1 <= limit <= max_limit
    """
    page = safe_int(request.args.get('page'), 1, min_val=1)
    limit = safe_int(request.args.get('limit'), default_limit, min_val=1, max_val=max_limit)
    return page, limit


def parse_datetime(value):
    """
    Parse an ISO-8601 string or epoch milliseconds into a naive UTC datetime.
    Returns None for anything unparseable.
    """
    if value in (None, ''):
        return None

    if isinstance(value, (int, float)) or (isinstance(value, str) and value.isdigit()):
        try:
            return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc).replace(tzinfo=None)
        except (OverflowError, OSError, ValueError):
            return None

    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def slugify(text):
    """Lower-case, hyphen-separated slug, at most 96 characters"""
    slug = re.sub(r'[^a-z0-9]+', '-', (text or '').lower()).strip('-')
    return slug[:96]
