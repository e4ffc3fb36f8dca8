"""Unit tests for InputValidator."""

import pytest

from src.core.validation import InputValidator
from src.modules.shared.exceptions import ValidationError


@pytest.mark.unit
class TestIntegers:
    @pytest.mark.parametrize("value, expected", [(5, 5), ("12", 12), (3.0, 3)])
    def test_accepts_whole_numbers(self, value, expected):
        assert InputValidator.validate_integer(value, "qty") == expected

    @pytest.mark.parametrize("value", [None, True, 2.5, "abc", "1.5", []])
    def test_rejects_non_integers(self, value):
        with pytest.raises(ValidationError) as exc_info:
            InputValidator.validate_integer(value, "qty")
        assert exc_info.value.field == "qty"

    def test_bounds_are_inclusive(self):
        assert InputValidator.validate_integer(1, "qty", min_value=1, max_value=10) == 1
        assert InputValidator.validate_integer(10, "qty", min_value=1, max_value=10) == 10

        with pytest.raises(ValidationError, match="at least 1"):
            InputValidator.validate_integer(0, "qty", min_value=1)
        with pytest.raises(ValidationError, match="Cannot exceed 10"):
            InputValidator.validate_integer(11, "qty", max_value=10)

    def test_positive_rejects_zero_and_negative(self):
        for value in (0, -1):
            with pytest.raises(ValidationError):
                InputValidator.validate_positive_integer(value, "amount")

    def test_non_negative_allows_zero(self):
        assert InputValidator.validate_non_negative_integer(0, "gold") == 0
        with pytest.raises(ValidationError):
            InputValidator.validate_non_negative_integer(-5, "gold")

    def test_id_upper_bound(self):
        assert InputValidator.validate_id(2**63 - 1, "auction_id") == 2**63 - 1
        with pytest.raises(ValidationError):
            InputValidator.validate_id(2**63, "auction_id")


@pytest.mark.unit
class TestStrings:
    def test_strips_whitespace(self):
        assert InputValidator.validate_string("  Aria  ", "name", min_length=1) == "Aria"

    def test_blank_string_fails_min_length(self):
        with pytest.raises(ValidationError):
            InputValidator.validate_string("   ", "name", min_length=1)

    def test_max_length(self):
        with pytest.raises(ValidationError, match="Cannot exceed 3"):
            InputValidator.validate_string("abcd", "name", max_length=3)

    @pytest.mark.parametrize("key", ["iron_sword", "ruby", "potion_2"])
    def test_item_keys(self, key):
        assert InputValidator.validate_item_key(key) == key

    @pytest.mark.parametrize("key", ["Iron_Sword", "iron-sword", "iron sword", "", "a" * 65])
    def test_bad_item_keys(self, key):
        with pytest.raises(ValidationError) as exc_info:
            InputValidator.validate_item_key(key)
        assert exc_info.value.field == "item_key"

    def test_discord_id_returned_as_string(self):
        assert InputValidator.validate_discord_id(123456789012345678) == "123456789012345678"

    @pytest.mark.parametrize("value", ["abc", "12a", "1" * 21, None])
    def test_bad_discord_ids(self, value):
        with pytest.raises(ValidationError):
            InputValidator.validate_discord_id(value)
