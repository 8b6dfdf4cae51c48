# catalogreg - Single-authority catalog asset registry
#
# Tracks ownership and metadata of integer-identified catalog assets.
#
# Core concepts:
# - Asset: an id with metadata and an owner account
# - Administrator: the one account that creates and retires assets
# - Owner: the account allowed to transfer an asset or edit its metadata
# - Registry: the state machine enforcing those rules over a durable store
# - Journal: signed log of every successful transition

from .errors import (
    RegistryError,
    AdminRequired,
    PermissionDenied,
    InvalidMetadata,
    AssetNotFound,
    InvalidRecipient,
    BatchLimitExceeded,
    AdministratorMismatch,
    ConfigError,
    StoreCorrupted,
)
from .validation import validate_metadata, RecipientPolicy
from .config import RegistryConfig
from .auth import AuthorizationGuard
from .journal import Journal, JournalEntry
from .registry import AssetRegistry, Asset, RegistryStore

__all__ = [
    # Registry
    "AssetRegistry",
    "Asset",
    "RegistryStore",
    "RegistryConfig",
    "AuthorizationGuard",
    "validate_metadata",
    "RecipientPolicy",
    "Journal",
    "JournalEntry",
    # Errors
    "RegistryError",
    "AdminRequired",
    "PermissionDenied",
    "InvalidMetadata",
    "AssetNotFound",
    "InvalidRecipient",
    "BatchLimitExceeded",
    "AdministratorMismatch",
    "ConfigError",
    "StoreCorrupted",
]

__version__ = "0.1.0"
