# catalogreg/errors.py
"""
Error taxonomy for the catalog asset registry.

Every failed operation raises a RegistryError subclass. A failed
operation never changes registry state.
"""

from typing import Optional


class RegistryError(Exception):
    """Base class for all registry failures."""


class AdminRequired(RegistryError):
    """Raised when a non-administrator calls an admin-only operation."""

    def __init__(self, caller):
        self.caller = caller
        super().__init__(f"Caller '{caller}' is not the registry administrator")


class PermissionDenied(RegistryError):
    """Raised when the caller does not own the target asset."""

    def __init__(self, asset_id, caller):
        self.asset_id = asset_id
        self.caller = caller
        super().__init__(f"Caller '{caller}' does not own asset {asset_id}")


class InvalidMetadata(RegistryError):
    """Raised when a metadata string violates the length bound."""

    def __init__(self, reason: str, index: Optional[int] = None):
        self.reason = reason
        self.index = index
        if index is None:
            super().__init__(f"Invalid metadata: {reason}")
        else:
            super().__init__(f"Invalid metadata at batch index {index}: {reason}")


class AssetNotFound(RegistryError):
    """Raised when an asset id has no ownership record."""

    def __init__(self, asset_id):
        self.asset_id = asset_id
        super().__init__(f"Asset {asset_id} does not exist")


class InvalidRecipient(RegistryError):
    """Raised when a transfer recipient fails the recipient policy."""

    def __init__(self, recipient, reason: str):
        self.recipient = recipient
        self.reason = reason
        super().__init__(f"Invalid recipient '{recipient}': {reason}")


class BatchLimitExceeded(RegistryError):
    """Raised when a batch is empty or larger than its configured cap."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"Batch of {size} items outside allowed range 1..{limit}")


class AdministratorMismatch(RegistryError):
    """Raised when a persisted store was created for another administrator."""

    def __init__(self, configured, stored):
        self.configured = configured
        self.stored = stored
        super().__init__(
            f"Store belongs to administrator '{stored}', "
            f"configured administrator is '{configured}'"
        )


class ConfigError(RegistryError):
    """Raised for missing or malformed configuration values."""


class StoreCorrupted(RegistryError):
    """Raised when a persisted registry file cannot be loaded."""

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Registry file {path} is unreadable: {reason}")
