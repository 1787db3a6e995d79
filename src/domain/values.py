"""
Value objects - Immutable wrappers enforcing input invariants.

Construction from a raw primitive either returns a frozen instance or raises
FormatError naming the violated constraint. Equality is by value.
"""

import calendar
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

import bcrypt

from .exceptions import FormatError

DEFAULT_BCRYPT_COST = 12
MIN_PASSWORD_LENGTH = 6
# bcrypt only considers the first 72 bytes; longer input is rejected
MAX_PASSWORD_BYTES = 72
MIN_CODE_LENGTH = 6
MAX_CODE_LENGTH = 12
MAX_USERNAME_LENGTH = 180

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_BCRYPT_PATTERN = re.compile(r"^\$2[aby]\$(\d{2})\$[./A-Za-z0-9]{53}$")


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def add_months(moment: datetime, months: int) -> datetime:
    """
    Shift a datetime by whole calendar months.

    The day is clamped to the last day of the target month,
    so Jan 31 + 1 month is Feb 28 (or 29).
    """
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


class Purpose(str, Enum):
    """Business reason a security challenge was issued for."""

    TWO_FACTOR = "2fa"
    EMAIL_VERIFICATION = "email_verification"
    PASSWORD_RESET = "password_reset"
    ACCOUNT_ACTIVATION = "account_activation"
    TRANSACTION_APPROVAL = "transaction_approval"

    @classmethod
    def from_string(cls, value: str) -> "Purpose":
        try:
            return cls(value)
        except ValueError:
            raise FormatError(f"Unknown purpose: {value!r}") from None


class CodeStatus(str, Enum):
    """
    Security code lifecycle states.

    UNUSED -> USED is the only transition and it is irreversible.
    """

    UNUSED = "unused"
    USED = "used"


class SecurityLevel(str, Enum):
    """Selects the alphabet random codes are drawn from."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    ULTRA = "ultra"

    @classmethod
    def from_string(cls, value: str) -> "SecurityLevel":
        try:
            return cls(value)
        except ValueError:
            raise FormatError(f"Invalid security level: {value!r}") from None

    @property
    def alphabet(self) -> str:
        return _ALPHABETS[self]


_DIGITS = "0123456789"
_UPPER = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
_LOWER = "abcdefghijklmnopqrstuvwxyz"
_SYMBOLS = "!@#$%^&*()-_=+[]{}|;:,.<>?/"

_ALPHABETS = {
    SecurityLevel.LOW: _DIGITS,
    SecurityLevel.MEDIUM: _DIGITS + _UPPER,
    SecurityLevel.HIGH: _DIGITS + _UPPER + _LOWER,
    SecurityLevel.ULTRA: _DIGITS + _UPPER + _LOWER + _SYMBOLS,
}


@dataclass(frozen=True)
class Email:
    """Normalized (stripped, lowercased) email address."""

    value: str

    @classmethod
    def from_string(cls, raw: str) -> "Email":
        normalized = raw.strip().lower()
        if not _EMAIL_PATTERN.match(normalized):
            raise FormatError("Not a valid email")
        return cls(normalized)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Username:
    value: str

    @classmethod
    def from_string(cls, raw: str) -> "Username":
        value = raw.strip()
        if not value:
            raise FormatError("Username must not be blank")
        if len(value) > MAX_USERNAME_LENGTH:
            raise FormatError(f"Username must be at most {MAX_USERNAME_LENGTH} characters")
        return cls(value)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class HashedPassword:
    """
    bcrypt password hash.

    encode() hashes a plaintext with a fresh salt, from_hash() wraps an
    existing hash without re-hashing. match() delegates to bcrypt.checkpw,
    which compares in constant time.
    """

    value: str = field(repr=False)
    cost: int = DEFAULT_BCRYPT_COST

    @classmethod
    def encode(cls, plain: str, cost: int = DEFAULT_BCRYPT_COST) -> "HashedPassword":
        if len(plain) < MIN_PASSWORD_LENGTH:
            raise FormatError(f"Min {MIN_PASSWORD_LENGTH} characters")
        raw = plain.encode()
        if len(raw) > MAX_PASSWORD_BYTES:
            raise FormatError(f"Max {MAX_PASSWORD_BYTES} bytes")
        hashed = bcrypt.hashpw(raw, bcrypt.gensalt(rounds=cost)).decode()
        return cls(hashed, cost)

    @classmethod
    def from_hash(cls, hashed: str) -> "HashedPassword":
        match = _BCRYPT_PATTERN.match(hashed)
        if match is None:
            raise FormatError("Not a bcrypt hash")
        return cls(hashed, int(match.group(1)))

    def match(self, plain: str) -> bool:
        raw = plain.encode()
        if len(raw) > MAX_PASSWORD_BYTES:
            return False
        return bcrypt.checkpw(raw, self.value.encode())

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Credentials:
    """Email and hashed password supplied together at sign-up."""

    email: Email
    password: HashedPassword


@dataclass(frozen=True)
class Code:
    """Single security code string, drawn from the ultra alphabet."""

    value: str

    @classmethod
    def from_string(cls, raw: str) -> "Code":
        if not raw or not raw.strip():
            raise FormatError("Code must not be blank")
        if not MIN_CODE_LENGTH <= len(raw) <= MAX_CODE_LENGTH:
            raise FormatError(
                f"Code length must be between {MIN_CODE_LENGTH} and {MAX_CODE_LENGTH}"
            )
        allowed = SecurityLevel.ULTRA.alphabet
        if any(char not in allowed for char in raw):
            raise FormatError("Code contains characters outside the code alphabet")
        return cls(raw)

    def __str__(self) -> str:
        return self.value
