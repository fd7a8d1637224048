"""Pure helpers shared by the gateway client and the views."""

import re
from decimal import Decimal, ROUND_HALF_UP

COUNTRY_CODE = "254"
TRUNK_PREFIX = "0"

_STRIP_PATTERN = re.compile(r"[\s\-+]")


def normalize_phone_number(value) -> str:
    """
    Canonical M-Pesa MSISDN (254XXXXXXXXX).

    "0712 345 678", "+254712345678" and "254712345678" all become
    "254712345678". Never raises: garbage in gives deterministic garbage out,
    plausibility checks belong to the caller.
    """
    cleaned = _STRIP_PATTERN.sub("", str(value or ""))
    if cleaned.startswith(TRUNK_PREFIX):
        cleaned = COUNTRY_CODE + cleaned[len(TRUNK_PREFIX):]
    if not cleaned.startswith(COUNTRY_CODE):
        cleaned = COUNTRY_CODE + cleaned
    return cleaned


def to_whole_units(amount) -> int:
    """Round half-up to a whole currency unit; M-Pesa rejects fractions."""
    return int(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
