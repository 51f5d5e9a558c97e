from .models import (
    EMPTY_TABLE,
    INFINITE,
    LIMITS_FILENAME,
    NO_LIMITS,
    LimitLocation,
    LimitTable,
    LimitValue,
    format_limit,
    is_infinite,
    location_sort_key,
    validate_limit_value,
)
from .parse import ParsedLimits, load_limit_location, parse_limits_document
from .resolver import LimitTreeResolver, canonical_path
from .rewrite import (
    LimitFileUpdate,
    plan_limit_updates,
    prune_limit_table,
    render_limits_document,
    update_limit_table,
    write_limit_file,
)

__all__ = [
    "EMPTY_TABLE",
    "INFINITE",
    "LIMITS_FILENAME",
    "LimitFileUpdate",
    "LimitLocation",
    "LimitTable",
    "LimitTreeResolver",
    "LimitValue",
    "NO_LIMITS",
    "ParsedLimits",
    "canonical_path",
    "format_limit",
    "is_infinite",
    "load_limit_location",
    "location_sort_key",
    "parse_limits_document",
    "plan_limit_updates",
    "prune_limit_table",
    "render_limits_document",
    "update_limit_table",
    "validate_limit_value",
    "write_limit_file",
]
