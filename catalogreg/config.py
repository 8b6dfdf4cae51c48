# catalogreg/config.py
"""
Registry configuration.

Loaded from a YAML document:

    administrator: ADMINACCOUNT
    max_metadata_length: 256
    max_batch_create: 10
    max_batch_ids: 10
    max_batch_query: 5
    retire_policy: orphan      # or "cascade"
    journal: true

Only `administrator` is required.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import yaml

from .errors import ConfigError
from .validation import MAX_METADATA_LENGTH, ZERO_ACCOUNT, RecipientPolicy

RETIRE_ORPHAN = "orphan"
RETIRE_CASCADE = "cascade"
RETIRE_POLICIES = (RETIRE_ORPHAN, RETIRE_CASCADE)

_INT_FIELDS = ("max_metadata_length", "max_batch_create", "max_batch_ids", "max_batch_query")


@dataclass
class RegistryConfig:
    """
    Settings fixed for the lifetime of a registry.

    Attributes:
        administrator: The single account allowed to create and retire assets
        max_metadata_length: Upper bound on metadata length
        max_batch_create: Cap on metadata items per batch create
        max_batch_ids: Cap on asset ids per batch retire
        max_batch_query: Cap on asset ids per batch lookup
        retire_policy: "orphan" keeps metadata on retire, "cascade" deletes it
        zero_account: Account that can never receive a transfer
        journal: Record signed journal entries for each transition
    """
    administrator: str
    max_metadata_length: int = MAX_METADATA_LENGTH
    max_batch_create: int = 10
    max_batch_ids: int = 10
    max_batch_query: int = 5
    retire_policy: str = RETIRE_ORPHAN
    zero_account: str = ZERO_ACCOUNT
    journal: bool = True
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.administrator, str) or not self.administrator.strip():
            raise ConfigError("administrator must be a non-empty account identifier")
        for name in _INT_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigError(f"{name} must be a positive integer, got {value!r}")
        if self.max_metadata_length > MAX_METADATA_LENGTH:
            raise ConfigError(
                f"max_metadata_length cannot exceed {MAX_METADATA_LENGTH}, "
                f"got {self.max_metadata_length}"
            )
        if not isinstance(self.journal, bool):
            raise ConfigError(f"journal must be true or false, got {self.journal!r}")
        if not isinstance(self.zero_account, str) or not self.zero_account:
            raise ConfigError(f"zero_account must be a non-empty string, got {self.zero_account!r}")
        if self.retire_policy not in RETIRE_POLICIES:
            raise ConfigError(
                f"retire_policy must be one of {RETIRE_POLICIES}, got {self.retire_policy!r}"
            )
        if self.administrator == self.zero_account:
            raise ConfigError("administrator cannot be the zero account")

    @property
    def recipient_policy(self) -> RecipientPolicy:
        return RecipientPolicy(zero_account=self.zero_account)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "administrator": self.administrator,
            "max_metadata_length": self.max_metadata_length,
            "max_batch_create": self.max_batch_create,
            "max_batch_ids": self.max_batch_ids,
            "max_batch_query": self.max_batch_query,
            "retire_policy": self.retire_policy,
            "zero_account": self.zero_account,
            "journal": self.journal,
        }
        data.update(self.extra)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RegistryConfig":
        if not isinstance(data, dict):
            raise ConfigError("configuration must be a mapping")
        if "administrator" not in data:
            raise ConfigError("configuration is missing 'administrator'")

        known = {
            "administrator", "retire_policy", "zero_account", "journal", *_INT_FIELDS,
        }
        kwargs = {k: v for k, v in data.items() if k in known}
        # Unknown keys are kept so a host can carry its own settings
        extra = {k: v for k, v in data.items() if k not in known}
        return cls(extra=extra, **kwargs)

    @classmethod
    def from_yaml(cls, yaml_content: str) -> "RegistryConfig":
        """Parse configuration from YAML content."""
        try:
            data = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid configuration YAML: {e}") from e
        return cls.from_dict(data or {})

    @classmethod
    def from_file(cls, path: Path | str) -> "RegistryConfig":
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")
        with open(path, "r") as f:
            return cls.from_yaml(f.read())
