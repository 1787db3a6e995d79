"""
Unit tests for domain value objects.

Tests verify:
- Construction from raw input normalizes or raises FormatError
- bcrypt hashing, hash parsing and matching
- Month arithmetic used for challenge expiry
"""

from datetime import UTC, datetime

import pytest

from src.domain.exceptions import FormatError
from src.domain.values import (
    Code,
    Email,
    HashedPassword,
    Purpose,
    SecurityLevel,
    Username,
    add_months,
)

TEST_COST = 4


class TestEmail:
    """Tests for Email normalization and validation."""

    def test_email_is_stripped_and_lowercased(self) -> None:
        assert Email.from_string("  Alice@Example.COM ").value == "alice@example.com"

    def test_emails_compare_by_value(self) -> None:
        assert Email.from_string("a@example.com") == Email.from_string("A@EXAMPLE.com")

    @pytest.mark.parametrize("raw", ["", "   ", "no-at-sign", "two@@example.com", "a@b", "a b@c.io"])
    def test_invalid_email_raises_format_error(self, raw: str) -> None:
        with pytest.raises(FormatError, match="Not a valid email"):
            Email.from_string(raw)


class TestUsername:
    def test_username_is_stripped(self) -> None:
        assert Username.from_string("  alice ").value == "alice"

    def test_blank_username_rejected(self) -> None:
        with pytest.raises(FormatError):
            Username.from_string("   ")

    def test_username_length_limit(self) -> None:
        Username.from_string("a" * 180)
        with pytest.raises(FormatError):
            Username.from_string("a" * 181)


class TestHashedPassword:
    """Tests for bcrypt-backed password hashing."""

    def test_encode_produces_bcrypt_hash(self) -> None:
        hashed = HashedPassword.encode("secret-pw", TEST_COST)
        assert hashed.value.startswith("$2")
        assert hashed.value != "secret-pw"
        assert hashed.cost == TEST_COST

    def test_match_accepts_correct_password(self) -> None:
        hashed = HashedPassword.encode("secret-pw", TEST_COST)
        assert hashed.match("secret-pw") is True

    def test_match_rejects_wrong_password(self) -> None:
        hashed = HashedPassword.encode("secret-pw", TEST_COST)
        assert hashed.match("secret-px") is False

    def test_same_password_hashes_differently(self) -> None:
        """Each encode() uses a fresh salt."""
        first = HashedPassword.encode("secret-pw", TEST_COST)
        second = HashedPassword.encode("secret-pw", TEST_COST)
        assert first.value != second.value

    def test_short_password_rejected(self) -> None:
        with pytest.raises(FormatError, match="Min 6 characters"):
            HashedPassword.encode("12345", TEST_COST)

    def test_password_over_72_bytes_rejected(self) -> None:
        with pytest.raises(FormatError):
            HashedPassword.encode("x" * 73, TEST_COST)

    def test_match_with_overlong_input_is_false(self) -> None:
        hashed = HashedPassword.encode("secret-pw", TEST_COST)
        assert hashed.match("x" * 100) is False

    def test_from_hash_wraps_without_rehashing(self) -> None:
        original = HashedPassword.encode("secret-pw", TEST_COST)
        wrapped = HashedPassword.from_hash(original.value)
        assert wrapped.value == original.value
        assert wrapped.cost == TEST_COST
        assert wrapped.match("secret-pw")

    def test_from_hash_rejects_non_bcrypt(self) -> None:
        with pytest.raises(FormatError, match="Not a bcrypt hash"):
            HashedPassword.from_hash("plaintext")

    def test_hash_not_in_repr(self) -> None:
        hashed = HashedPassword.encode("secret-pw", TEST_COST)
        assert hashed.value not in repr(hashed)


class TestCode:
    """Tests for security code validation."""

    def test_valid_code(self) -> None:
        assert Code.from_string("A1b2C3").value == "A1b2C3"

    def test_symbols_from_ultra_alphabet_allowed(self) -> None:
        assert Code.from_string("!@#$%^&*").value == "!@#$%^&*"

    @pytest.mark.parametrize("raw", ["", "      ", "12345", "1234567890123"])
    def test_blank_or_bad_length_rejected(self, raw: str) -> None:
        with pytest.raises(FormatError):
            Code.from_string(raw)

    def test_character_outside_alphabet_rejected(self) -> None:
        with pytest.raises(FormatError, match="alphabet"):
            Code.from_string("12345~")


class TestPurposeAndLevel:
    def test_purpose_from_string(self) -> None:
        assert Purpose.from_string("2fa") is Purpose.TWO_FACTOR
        assert Purpose.from_string("password_reset") is Purpose.PASSWORD_RESET

    def test_unknown_purpose_rejected(self) -> None:
        with pytest.raises(FormatError, match="Unknown purpose"):
            Purpose.from_string("login")

    def test_alphabets_grow_with_level(self) -> None:
        sizes = [len(level.alphabet) for level in SecurityLevel]
        assert sizes == [10, 36, 62, 62 + 27]

    def test_unknown_level_rejected(self) -> None:
        with pytest.raises(FormatError):
            SecurityLevel.from_string("extreme")


class TestAddMonths:
    def test_simple_month(self) -> None:
        start = datetime(2024, 3, 15, 9, 30, tzinfo=UTC)
        assert add_months(start, 1) == datetime(2024, 4, 15, 9, 30, tzinfo=UTC)

    def test_day_clamped_to_month_end(self) -> None:
        start = datetime(2024, 1, 31, tzinfo=UTC)
        assert add_months(start, 1) == datetime(2024, 2, 29, tzinfo=UTC)

    def test_year_rollover(self) -> None:
        start = datetime(2023, 12, 10, tzinfo=UTC)
        assert add_months(start, 1) == datetime(2024, 1, 10, tzinfo=UTC)
