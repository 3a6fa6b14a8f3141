import re
from typing import Any, List

from .errors import ValidationError

SCOPUS_ID_RE = re.compile(r"^\d{10,11}$")


def _as_int(value: Any):
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    # isdigit() also accepts superscripts that int() rejects
    if isinstance(value, str) and value.strip().isdecimal():
        return int(value.strip())
    return None


def application_id_errors(value: Any) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.
    """
    parsed = _as_int(value)
    if parsed is None:
        return [f"Application id must be a positive integer, got {value!r}"]
    if parsed <= 0:
        return [f"Application id must be a positive integer, got {parsed}"]
    return []


def validate_application_id(value: Any) -> int:
    errors = application_id_errors(value)
    if errors:
        raise ValidationError(errors)
    return _as_int(value)


def batch_errors(values: Any, max_size: int) -> List[str]:
    errors: List[str] = []
    if not isinstance(values, (list, tuple)) or len(values) == 0:
        return ["applicationIds must be a non-empty array"]
    if len(values) > max_size:
        errors.append(f"Maximum {max_size} applications can be processed in batch, got {len(values)}")
    for value in values:
        errors.extend(application_id_errors(value))
    return errors


def validate_batch_ids(values: Any, max_size: int) -> List[int]:
    """Validate the whole batch up front; nothing runs if any id is bad."""
    errors = batch_errors(values, max_size)
    if errors:
        raise ValidationError(errors)
    return [_as_int(v) for v in values]


def validate_scopus_id(value: Any) -> str:
    scopus_id = str(value or "").strip()
    if not SCOPUS_ID_RE.match(scopus_id):
        raise ValidationError("Invalid Scopus ID format. Expected 10-11 digit number.")
    return scopus_id
