# catalogreg/validation.py
"""
Argument validation shared by every registry operation.

One metadata rule is used for create, update and batch create. Transfer
recipients are checked against a RecipientPolicy.
"""

from dataclasses import dataclass
from typing import Any, Optional

from .errors import InvalidMetadata, InvalidRecipient

MIN_METADATA_LENGTH = 1
MAX_METADATA_LENGTH = 256

# Base32 encoding of 32 zero bytes plus checksum
ZERO_ACCOUNT = "AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAY5HFKQ"


def validate_metadata(text: Any, max_length: int = MAX_METADATA_LENGTH) -> bool:
    """Return True iff text is a string of 1..max_length characters."""
    if not isinstance(text, str):
        return False
    return MIN_METADATA_LENGTH <= len(text) <= max_length


def check_metadata(
    text: Any,
    max_length: int = MAX_METADATA_LENGTH,
    index: Optional[int] = None,
) -> str:
    """
    Validate metadata, raising InvalidMetadata with a reason on failure.

    Args:
        text: Candidate metadata
        max_length: Upper length bound (inclusive)
        index: Position within a batch, reported in the error

    Returns:
        The validated text
    """
    if validate_metadata(text, max_length):
        return text
    if not isinstance(text, str):
        reason = f"expected str, got {type(text).__name__}"
    elif not text:
        reason = "metadata is empty"
    else:
        reason = f"length {len(text)} exceeds maximum of {max_length}"
    raise InvalidMetadata(reason, index=index)


@dataclass(frozen=True)
class RecipientPolicy:
    """
    Rules a transfer recipient must satisfy.

    A recipient must be a non-empty string with no surrounding
    whitespace, must not be the zero account, and must differ from
    the asset's current owner.
    """
    zero_account: str = ZERO_ACCOUNT

    def reason_invalid(self, recipient: Any, current_owner: Optional[str] = None) -> Optional[str]:
        """Return why the recipient is invalid, or None if it is acceptable."""
        if not isinstance(recipient, str) or not recipient:
            return "recipient must be a non-empty account identifier"
        if recipient != recipient.strip():
            return "recipient has surrounding whitespace"
        if recipient == self.zero_account:
            return "recipient is the zero account"
        if current_owner is not None and recipient == current_owner:
            return "recipient already owns the asset"
        return None

    def is_valid(self, recipient: Any, current_owner: Optional[str] = None) -> bool:
        return self.reason_invalid(recipient, current_owner) is None

    def check(self, recipient: Any, current_owner: Optional[str] = None) -> str:
        """Raise InvalidRecipient if the recipient fails the policy."""
        reason = self.reason_invalid(recipient, current_owner)
        if reason is not None:
            raise InvalidRecipient(recipient, reason)
        return recipient
