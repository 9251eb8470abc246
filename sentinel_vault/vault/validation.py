"""Input validation for secret names and values."""
import unicodedata

from ..exceptions import ValidationError

MAX_NAME_LENGTH = 255
MAX_VALUE_LENGTH = 10_000

_INVALID_NAME_CHARS = frozenset('/\\:*?"<>|\0')
_RESERVED_NAMES = frozenset({".", "..", "CON", "PRN", "AUX", "NUL"})


def sanitize_secret_name(name: str) -> str:
    """Validate a secret name and return it unchanged.

    Names may not be empty, exceed 255 characters, contain path separators,
    shell/filesystem metacharacters or control characters, or match a
    reserved name (case-insensitive).

    Raises:
        ValidationError: If the name is not acceptable.
    """
    if not name:
        raise ValidationError("Secret name cannot be empty")
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(
            f"Secret name too long (max {MAX_NAME_LENGTH} characters)"
        )
    for char in name:
        if char in _INVALID_NAME_CHARS or unicodedata.category(char) == "Cc":
            raise ValidationError("Secret name contains invalid characters")
    if name.upper() in _RESERVED_NAMES:
        raise ValidationError(f"Secret name is reserved: {name}")
    return name


def validate_secret_value(value: str) -> None:
    """Reject empty, oversized or NUL-containing secret values.

    Raises:
        ValidationError: If the value is not acceptable.
    """
    if not value:
        raise ValidationError("Secret value cannot be empty")
    if len(value) > MAX_VALUE_LENGTH:
        raise ValidationError(
            f"Secret value too long (max {MAX_VALUE_LENGTH:,} characters)"
        )
    if "\0" in value:
        raise ValidationError("Secret value cannot contain null bytes")
