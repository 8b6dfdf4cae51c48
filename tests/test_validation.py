# tests/test_validation.py
"""Tests for metadata validation, recipient policy, the guard and config."""

import tempfile
from pathlib import Path

import pytest

from catalogreg import (
    AdminRequired,
    AssetRegistry,
    AuthorizationGuard,
    ConfigError,
    InvalidMetadata,
    InvalidRecipient,
    PermissionDenied,
    RecipientPolicy,
    RegistryConfig,
    RegistryStore,
    validate_metadata,
)
from catalogreg.validation import ZERO_ACCOUNT, check_metadata

ADMIN = "ADMIN"


class TestValidateMetadata:
    """Tests for the metadata length rule."""

    @pytest.mark.parametrize("text", ["x", "A - B - C", "y" * 256])
    def test_valid(self, text):
        assert validate_metadata(text)

    @pytest.mark.parametrize("text", ["", "y" * 257, None, 5, b"bytes"])
    def test_invalid(self, text):
        assert not validate_metadata(text)

    def test_custom_max(self):
        assert validate_metadata("abc", max_length=3)
        assert not validate_metadata("abcd", max_length=3)

    def test_check_reasons(self):
        """check_metadata should explain what is wrong."""
        with pytest.raises(InvalidMetadata, match="empty"):
            check_metadata("")
        with pytest.raises(InvalidMetadata, match="exceeds"):
            check_metadata("y" * 300)
        with pytest.raises(InvalidMetadata, match="expected str"):
            check_metadata(None)
        assert check_metadata("ok") == "ok"


class TestRecipientPolicy:
    """Tests for transfer recipient rules."""

    def test_accepts_ordinary_account(self):
        assert RecipientPolicy().is_valid("addr2", current_owner=ADMIN)

    @pytest.mark.parametrize("recipient", ["", None, 7, " addr2", "addr2\n", ZERO_ACCOUNT, ADMIN])
    def test_rejects(self, recipient):
        assert not RecipientPolicy().is_valid(recipient, current_owner=ADMIN)

    def test_check_raises(self):
        with pytest.raises(InvalidRecipient) as exc_info:
            RecipientPolicy(zero_account="ZERO").check("ZERO")
        assert exc_info.value.recipient == "ZERO"
        assert RecipientPolicy().check("addr2") == "addr2"


class TestAuthorizationGuard:
    """Tests for admin and owner checks."""

    @pytest.fixture
    def guard(self):
        store = RegistryStore()
        store.set_owner(store.allocate_id(), "alice")
        return AuthorizationGuard(ADMIN, store)

    def test_is_admin(self, guard):
        assert guard.is_admin(ADMIN)
        assert not guard.is_admin("alice")
        assert not guard.is_admin(None)

    def test_is_owner(self, guard):
        assert guard.is_owner(1, "alice")
        assert not guard.is_owner(1, ADMIN)

    def test_missing_record_fails_closed(self, guard):
        assert not guard.is_owner(2, "alice")
        assert not guard.is_owner(None, None)
        assert not guard.is_owner([1], "alice")

    def test_reflects_current_state(self, guard):
        """Changing the ownership record changes the answer."""
        guard._store.set_owner(1, "bob")
        assert guard.is_owner(1, "bob")
        assert not guard.is_owner(1, "alice")

    def test_require(self, guard):
        guard.require_admin(ADMIN)
        guard.require_owner(1, "alice")
        with pytest.raises(AdminRequired):
            guard.require_admin("alice")
        with pytest.raises(PermissionDenied):
            guard.require_owner(1, "bob")


class TestRegistryConfig:
    """Tests for configuration loading."""

    def test_defaults(self):
        config = RegistryConfig(administrator=ADMIN)
        assert config.max_metadata_length == 256
        assert config.max_batch_create == 10
        assert config.max_batch_ids == 10
        assert config.max_batch_query == 5
        assert config.retire_policy == "orphan"
        assert config.journal is True

    def test_from_yaml(self):
        config = RegistryConfig.from_yaml(
            "administrator: ADMIN\n"
            "max_batch_create: 3\n"
            "retire_policy: cascade\n"
            "journal: false\n"
            "site: catalog-eu\n"
        )
        assert config.administrator == ADMIN
        assert config.max_batch_create == 3
        assert config.retire_policy == "cascade"
        assert config.journal is False
        assert config.extra == {"site": "catalog-eu"}
        assert config.to_dict()["site"] == "catalog-eu"

    def test_from_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "catalog.yaml"
            path.write_text("administrator: ADMIN\n")
            assert RegistryConfig.from_file(path).administrator == ADMIN

    def test_missing_file(self):
        with pytest.raises(ConfigError):
            RegistryConfig.from_file("/nonexistent/catalog.yaml")

    @pytest.mark.parametrize("content", [
        "",
        "max_batch_create: 3\n",
        "administrator: ''\n",
        "administrator: ADMIN\nmax_batch_create: 0\n",
        "administrator: ADMIN\nmax_batch_query: true\n",
        "administrator: ADMIN\nretire_policy: shred\n",
        "administrator: ADMIN\nmax_metadata_length: 257\n",
        "administrator: ADMIN\njournal: 'no'\n",
        "administrator: ADMIN\njournal: 1\n",
        "administrator: ADMIN\nzero_account: 0\n",
        "administrator: ADMIN\nzero_account: ''\n",
        "- not\n- a mapping\n",
        "administrator: [unclosed\n",
    ])
    def test_invalid(self, content):
        with pytest.raises(ConfigError):
            RegistryConfig.from_yaml(content)

    def test_admin_cannot_be_zero_account(self):
        with pytest.raises(ConfigError):
            RegistryConfig(administrator=ZERO_ACCOUNT)

    def test_metadata_length_capped(self):
        """The metadata bound can be lowered but never raised past 256."""
        with pytest.raises(ConfigError, match="cannot exceed 256"):
            RegistryConfig(administrator="A", max_metadata_length=257)
        assert RegistryConfig(administrator="A", max_metadata_length=100).max_metadata_length == 100

    def test_lowered_bound_applies_to_create(self):
        """A registry configured with a smaller bound enforces it."""
        config = RegistryConfig(administrator=ADMIN, max_metadata_length=8, journal=False)
        registry = AssetRegistry(config)
        assert registry.create(ADMIN, "x" * 8) == 1
        with pytest.raises(InvalidMetadata):
            registry.create(ADMIN, "x" * 9)

    def test_non_bool_journal_rejected(self):
        with pytest.raises(ConfigError):
            RegistryConfig(administrator=ADMIN, journal="no")

    def test_non_string_zero_account_rejected(self):
        with pytest.raises(ConfigError):
            RegistryConfig(administrator=ADMIN, zero_account=0)
