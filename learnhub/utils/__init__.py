"""Utility modules."""
from learnhub.utils.time_utils import as_utc, parse_iso_timestamp, seconds_until, utc_now
from learnhub.utils.validation import validate_id

__all__ = [
    "as_utc",
    "parse_iso_timestamp",
    "seconds_until",
    "utc_now",
    "validate_id",
]
