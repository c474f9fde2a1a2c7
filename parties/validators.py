# parties/validators.py
import re

from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _

# 2-digit state code + PAN (5 letters, 4 digits, 1 letter) + 3 alphanumerics
GSTIN_RE = re.compile(r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z][0-9A-Z]{3}$")
GSTIN_LENGTH = 15


def is_valid_gstin(value) -> bool:
    if not isinstance(value, str):
        return False
    return len(value) == GSTIN_LENGTH and bool(GSTIN_RE.match(value))


def validate_gstin(value):
    if not is_valid_gstin(value):
        raise ValidationError(
            _("Invalid GSTIN format. Must be 15 characters (example: 37ACRPK5945P1ZK)."),
            code="invalid_gstin",
            params={"value": value},
        )
