"""Field checks for onboarding payloads. Raise ValidationError naming the offending field."""

import re
from typing import Any, Optional

from email_validator import EmailNotValidError, validate_email

from edufin.core.exceptions import ValidationError

PAN_PATTERN = re.compile(r"^[A-Z]{5}[0-9]{4}[A-Z]$")


def is_valid_pan(value: Optional[str]) -> bool:
    """"ABCDE1234F" passes; lowercase or a trailing digit does not."""
    return bool(value) and PAN_PATTERN.match(value) is not None


def require(value: Any, field: str, label: str) -> None:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{label} is required", field=field)


def check_pan(value: Optional[str], field: str, label: str = "PAN") -> str:
    require(value, field, label)
    pan = value.strip()
    if not is_valid_pan(pan):
        raise ValidationError(f"{label} must match the format ABCDE1234F", field=field)
    return pan


def check_email(value: Optional[str], field: str, label: str = "Email") -> str:
    require(value, field, label)
    try:
        return validate_email(value.strip(), check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise ValidationError(f"{label} is not a valid email address", field=field) from e


def check_consent(value: Optional[bool], field: str, label: str) -> None:
    if value is not True:
        raise ValidationError(f"{label} must be accepted", field=field)
