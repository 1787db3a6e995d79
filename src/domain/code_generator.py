"""
Random code generator - Cryptographically secure code synthesis.

Uses the secrets module for all randomness. When duplicate characters are
disallowed, each code is a prefix of a Fisher-Yates shuffle of the alphabet,
which samples every ordered arrangement uniformly.
"""

import secrets

from .exceptions import ConfigurationError
from .values import MAX_CODE_LENGTH, MIN_CODE_LENGTH, SecurityLevel


class SecureCodeGenerator:
    """Implements CodeGenerator protocol via the secrets module."""

    def generate(
        self,
        quantity: int,
        length: int,
        level: SecurityLevel,
        allow_duplicates: bool = True,
    ) -> list[str]:
        alphabet = level.alphabet
        self._validate(quantity, length, alphabet, allow_duplicates)

        if allow_duplicates:
            return [self._random_code(length, alphabet) for _ in range(quantity)]
        return [self._unique_code(length, alphabet) for _ in range(quantity)]

    def _validate(self, quantity: int, length: int, alphabet: str, allow_duplicates: bool) -> None:
        if quantity <= 0:
            raise ConfigurationError("Quantity must be greater than zero.")
        if not MIN_CODE_LENGTH <= length <= MAX_CODE_LENGTH:
            raise ConfigurationError(
                f"Length must be between {MIN_CODE_LENGTH} and {MAX_CODE_LENGTH}."
            )
        if not allow_duplicates and length > len(alphabet):
            raise ConfigurationError(
                "Cannot generate a unique code with specified length and character set."
            )

    def _random_code(self, length: int, alphabet: str) -> str:
        return "".join(secrets.choice(alphabet) for _ in range(length))

    def _unique_code(self, length: int, alphabet: str) -> str:
        chars = list(alphabet)
        # Fisher-Yates; only the first `length` positions are needed
        for i in range(length):
            j = i + secrets.randbelow(len(chars) - i)
            chars[i], chars[j] = chars[j], chars[i]
        return "".join(chars[:length])
