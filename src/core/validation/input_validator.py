"""
Input bounds for the economy engines.

Everything a command hands to a service (ids, quantities, gold amounts,
durations, item keys, names, Discord snowflakes) passes through here first.
The checks are purely about shape and range; whether a character can afford
something or owns an item is decided later, inside the unit of work, against
locked rows.

Failures are logged at DEBUG (``field_name``, ``raw_value``, ``reason``) and
raised as ``ValidationError`` so the command layer can show the reason
verbatim.
"""

from __future__ import annotations

import re
from typing import Any, NoReturn, Optional

from src.core.logging.logger import get_logger
from src.modules.shared.exceptions import ValidationError

logger = get_logger(__name__)

ITEM_KEY_PATTERN = re.compile(r"^[a-z0-9_]+$")
ITEM_KEY_MAX_LENGTH = 64
SNOWFLAKE_MAX_LENGTH = 20
MAX_ID = 2**63 - 1


def _reject(field_name: str, value: Any, reason: str) -> NoReturn:
    logger.debug(
        "Rejected input",
        extra={"field_name": field_name, "raw_value": repr(value), "reason": reason},
    )
    raise ValidationError(field_name, reason)


def _as_int(value: Any, field_name: str) -> int:
    # bool is an int subclass; "True" gold is never intended
    if value is None:
        _reject(field_name, value, "Value is required")
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        _reject(field_name, value, f"Expected a whole number, got '{value}'")
    try:
        return int(value)
    except (TypeError, ValueError):
        _reject(field_name, value, f"Expected a whole number, got '{value}'")


class InputValidator:
    """Static checks; each returns the normalized value or raises ValidationError."""

    @staticmethod
    def validate_integer(
        value: Any,
        field_name: str,
        min_value: Optional[int] = None,
        max_value: Optional[int] = None,
        allow_zero: bool = True,
    ) -> int:
        """
        Coerce ``value`` to ``int`` and check it against inclusive bounds.

        Numeric strings and integral floats (``"12"``, ``3.0``) are accepted;
        booleans, fractions and anything ``int()`` refuses are not.
        """
        number = _as_int(value, field_name)

        if number == 0 and not allow_zero:
            _reject(field_name, number, "Cannot be zero")
        if min_value is not None and number < min_value:
            _reject(field_name, number, f"Must be at least {min_value}, got {number}")
        if max_value is not None and number > max_value:
            _reject(field_name, number, f"Cannot exceed {max_value}, got {number}")

        return number

    @staticmethod
    def validate_positive_integer(
        value: Any, field_name: str, max_value: Optional[int] = None
    ) -> int:
        return InputValidator.validate_integer(
            value, field_name, min_value=1, max_value=max_value, allow_zero=False
        )

    @staticmethod
    def validate_non_negative_integer(
        value: Any, field_name: str, max_value: Optional[int] = None
    ) -> int:
        return InputValidator.validate_integer(value, field_name, min_value=0, max_value=max_value)

    @staticmethod
    def validate_id(value: Any, field_name: str) -> int:
        """Row ids: 1 up to the BIGINT maximum."""
        return InputValidator.validate_positive_integer(value, field_name, max_value=MAX_ID)

    @staticmethod
    def validate_string(
        value: Any,
        field_name: str,
        min_length: Optional[int] = None,
        max_length: Optional[int] = None,
    ) -> str:
        """Strip surrounding whitespace, then check the length."""
        if value is None:
            _reject(field_name, value, "Value is required")

        text = str(value).strip()
        if min_length is not None and len(text) < min_length:
            _reject(field_name, text, f"Must be at least {min_length} characters")
        if max_length is not None and len(text) > max_length:
            _reject(field_name, text, f"Cannot exceed {max_length} characters")
        return text

    @staticmethod
    def validate_item_key(value: Any, field_name: str = "item_key") -> str:
        key = InputValidator.validate_string(
            value, field_name, min_length=1, max_length=ITEM_KEY_MAX_LENGTH
        )
        if ITEM_KEY_PATTERN.match(key) is None:
            _reject(field_name, key, "Use lowercase letters, digits and underscores only")
        return key

    @staticmethod
    def validate_discord_id(value: Any, field_name: str = "discord_id") -> str:
        """Snowflakes are kept as digit strings, which is how users are keyed."""
        snowflake = InputValidator.validate_string(
            value, field_name, min_length=1, max_length=SNOWFLAKE_MAX_LENGTH
        )
        if not snowflake.isdigit():
            _reject(field_name, snowflake, "Must be a numeric Discord ID")
        return snowflake
