# catalogreg/registry/registry.py
"""
The catalog asset registry.

Four transitions change state:
- create: administrator issues a new asset and becomes its owner
- transfer: the owner hands the asset to another account
- update_metadata: the owner replaces the asset's metadata
- retire: administrator removes the asset's ownership record

Each transition runs under the registry lock. Authorization and argument
checks complete before anything is mutated, and a failure to persist
rolls the in-memory state back, so callers only ever observe whole
transitions.
"""

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence

from ..auth import AuthorizationGuard
from ..config import RETIRE_CASCADE, RegistryConfig
from ..errors import AssetNotFound, BatchLimitExceeded, RegistryError
from ..journal import CREATE, RETIRE, TRANSFER, UPDATE_METADATA, Journal, JournalEntry
from ..validation import check_metadata, validate_metadata
from .store import Asset, RegistryStore

logger = logging.getLogger(__name__)


def _check_batch_size(items: Sequence[Any], limit: int):
    if not 1 <= len(items) <= limit:
        raise BatchLimitExceeded(len(items), limit)


class AssetRegistry:
    """
    Single-authority registry of catalog assets.

    Usage:
        config = RegistryConfig(administrator="ADMIN")
        registry = AssetRegistry(config, store_dir="/var/lib/catalog")

        asset_id = registry.create("ADMIN", "A - B - C")
        registry.transfer("ADMIN", asset_id, "addr2")
        registry.update_metadata("addr2", asset_id, "new")
    """

    def __init__(
        self,
        config: RegistryConfig,
        store_dir: Path | str | None = None,
        store: Optional[RegistryStore] = None,
        journal: Optional[Journal] = None,
    ):
        """
        Args:
            config: Registry settings, including the administrator
            store_dir: Directory for durable state (in-memory if None)
            store: Explicit store, overrides store_dir
            journal: Explicit journal, overrides the one built from store_dir
        """
        self.config = config
        self.store = store if store is not None else RegistryStore(store_dir)
        self.store.bind_administrator(config.administrator)

        if journal is not None:
            self.journal = journal
        elif config.journal:
            self.journal = Journal(store_dir)
        else:
            self.journal = None

        self.guard = AuthorizationGuard(config.administrator, self.store)
        self._recipients = config.recipient_policy
        self._lock = threading.Lock()

    @property
    def administrator(self) -> str:
        return self.guard.administrator

    @contextmanager
    def _transaction(self, pending: List[JournalEntry]) -> Iterator[None]:
        """
        Serialize a transition and make it all-or-nothing.

        The body mutates the store and appends journal entries to
        `pending`. On any failure the store's changes are undone; on
        success the store is saved and the entries recorded.
        """
        with self._lock:
            self.store.begin()
            try:
                yield
                self.store.save()
            except RegistryError as e:
                self.store.rollback()
                logger.warning(f"Refused: {e}")
                raise
            except Exception:
                self.store.rollback()
                raise

            if self.journal is not None and pending:
                try:
                    self.journal.record(pending)
                except Exception:
                    logger.error("Journal write failed, rolling back transition")
                    self.store.rollback()
                    self.store.save()
                    raise
            self.store.commit()

    # -- transitions ---------------------------------------------------

    def _create_unlocked(self, caller: str, metadata: str, pending: List[JournalEntry]) -> int:
        asset_id = self.store.allocate_id()
        self.store.set_owner(asset_id, caller)
        self.store.set_metadata(asset_id, metadata)
        pending.append(JournalEntry.new(CREATE, asset_id, caller, metadata=metadata))
        return asset_id

    def create(self, caller: str, metadata: str) -> int:
        """
        Issue a new asset owned by the administrator.

        Raises:
            AdminRequired: caller is not the administrator
            InvalidMetadata: metadata is empty, too long or not a string

        Returns:
            The new asset id (previous asset_count() + 1)
        """
        pending: List[JournalEntry] = []
        with self._transaction(pending):
            self.guard.require_admin(caller)
            check_metadata(metadata, self.config.max_metadata_length)
            asset_id = self._create_unlocked(caller, metadata, pending)
        logger.info(f"Created asset {asset_id}")
        return asset_id

    def batch_create(self, caller: str, items: Sequence[str]) -> List[int]:
        """
        Create one asset per metadata item, all or nothing.

        Every item is validated before any id is issued. If one item is
        invalid, no asset is created and InvalidMetadata names its index.

        Raises:
            AdminRequired: caller is not the administrator
            BatchLimitExceeded: items is empty or above max_batch_create
            InvalidMetadata: an item failed validation

        Returns:
            The new ids, consecutive and in input order
        """
        items = list(items)
        pending: List[JournalEntry] = []
        with self._transaction(pending):
            self.guard.require_admin(caller)
            _check_batch_size(items, self.config.max_batch_create)
            for index, metadata in enumerate(items):
                check_metadata(metadata, self.config.max_metadata_length, index=index)
            asset_ids = [self._create_unlocked(caller, m, pending) for m in items]
        logger.info(f"Created assets {asset_ids[0]}..{asset_ids[-1]}")
        return asset_ids

    def transfer(self, caller: str, asset_id: int, recipient: str):
        """
        Hand an asset to another account.

        Raises:
            PermissionDenied: caller does not own the asset (or it does not exist)
            InvalidRecipient: recipient fails the recipient policy
        """
        pending: List[JournalEntry] = []
        with self._transaction(pending):
            self.guard.require_owner(asset_id, caller)
            self._recipients.check(recipient, current_owner=caller)
            self.store.set_owner(asset_id, recipient)
            pending.append(JournalEntry.new(
                TRANSFER, asset_id, caller, previous_owner=caller, recipient=recipient,
            ))
        logger.info(f"Transferred asset {asset_id} to {recipient}")

    def update_metadata(self, caller: str, asset_id: int, text: str):
        """
        Replace an asset's metadata.

        Raises:
            PermissionDenied: caller does not own the asset
            InvalidMetadata: text fails validation
        """
        pending: List[JournalEntry] = []
        with self._transaction(pending):
            self.guard.require_owner(asset_id, caller)
            check_metadata(text, self.config.max_metadata_length)
            self.store.set_metadata(asset_id, text)
            pending.append(JournalEntry.new(UPDATE_METADATA, asset_id, caller, metadata=text))
        logger.info(f"Updated metadata of asset {asset_id}")

    def _retire_unlocked(self, caller: str, asset_id: int, pending: List[JournalEntry]):
        owner = self.store.get_owner(asset_id)
        self.store.delete_owner(asset_id)
        cascade = self.config.retire_policy == RETIRE_CASCADE
        if cascade:
            self.store.delete_metadata(asset_id)
        pending.append(JournalEntry.new(
            RETIRE, asset_id, caller, previous_owner=owner, metadata_removed=cascade,
        ))

    def retire(self, caller: str, asset_id: int):
        """
        Remove an asset's ownership record.

        Metadata is kept under the "orphan" retire policy and deleted
        under "cascade". The id is never issued again.

        Raises:
            AdminRequired: caller is not the administrator
            AssetNotFound: no ownership record for asset_id
        """
        pending: List[JournalEntry] = []
        with self._transaction(pending):
            self.guard.require_admin(caller)
            if not self.store.has_owner(asset_id):
                raise AssetNotFound(asset_id)
            self._retire_unlocked(caller, asset_id, pending)
        logger.info(f"Retired asset {asset_id}")

    def batch_retire(self, caller: str, asset_ids: Sequence[int]) -> List[int]:
        """
        Retire several assets, all or nothing.

        Raises:
            AdminRequired: caller is not the administrator
            BatchLimitExceeded: asset_ids is empty or above max_batch_ids
            AssetNotFound: an id is unknown, already retired or repeated
        """
        asset_ids = list(asset_ids)
        pending: List[JournalEntry] = []
        with self._transaction(pending):
            self.guard.require_admin(caller)
            _check_batch_size(asset_ids, self.config.max_batch_ids)
            seen = set()
            for asset_id in asset_ids:
                if not self.store.has_owner(asset_id) or asset_id in seen:
                    raise AssetNotFound(asset_id)
                seen.add(asset_id)
            for asset_id in asset_ids:
                self._retire_unlocked(caller, asset_id, pending)
        logger.info(f"Retired assets {asset_ids}")
        return asset_ids

    # -- queries -------------------------------------------------------

    def is_admin(self, caller: Any) -> bool:
        return self.guard.is_admin(caller)

    def is_owner(self, asset_id: Any, caller: Any) -> bool:
        return self.guard.is_owner(asset_id, caller)

    def validate_metadata(self, text: Any) -> bool:
        return validate_metadata(text, self.config.max_metadata_length)

    def get_metadata(self, asset_id: Any) -> Optional[str]:
        """Metadata for asset_id, or None. Retired assets may still have metadata."""
        return self.store.get_metadata(asset_id)

    def get_owner(self, asset_id: Any) -> Optional[str]:
        return self.store.get_owner(asset_id)

    def exists(self, asset_id: Any) -> bool:
        return self.store.has_owner(asset_id)

    def asset_count(self) -> int:
        """Number of assets ever created (the last issued id)."""
        return self.store.next_id

    def get_asset(self, asset_id: Any) -> Optional[Asset]:
        return self.store.get_asset(asset_id)

    def get_assets(self, asset_ids: Sequence[Any]) -> List[Optional[Asset]]:
        """
        Look up several assets at once.

        Raises:
            BatchLimitExceeded: asset_ids is empty or above max_batch_query
        """
        asset_ids = list(asset_ids)
        _check_batch_size(asset_ids, self.config.max_batch_query)
        return [self.store.get_asset(asset_id) for asset_id in asset_ids]

    def assets_owned_by(self, account: Any) -> List[int]:
        """Ids of live assets owned by account, ascending."""
        return [asset_id for asset_id, owner in self.store.owner_items() if owner == account]

    def history(self, asset_id: int) -> List[JournalEntry]:
        """Journal entries for an asset (empty when journaling is off)."""
        if self.journal is None:
            return []
        return self.journal.history(asset_id)

    def __len__(self) -> int:
        return len(self.store)

    def __contains__(self, asset_id: Any) -> bool:
        return self.exists(asset_id)
