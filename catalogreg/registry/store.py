# catalogreg/registry/store.py
"""
Durable state of the asset registry.

The store holds three things:
- next_id: the last issued asset id (0 before the first create)
- metadata: asset id -> metadata string
- owners: asset id -> owner account

Ownership and metadata are kept in separate maps. An asset exists
while it has an ownership record; its metadata may outlive it.

Structure on disk:
    store_dir/
        registry.json     # Administrator, counter, metadata, owners
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from ..errors import AdministratorMismatch, StoreCorrupted

logger = logging.getLogger(__name__)

INDEX_VERSION = "1.0"


def _is_asset_id(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class Asset:
    """
    Snapshot of a live asset.

    Attributes:
        asset_id: Positive integer id assigned at creation
        metadata: Metadata string (None only if removed out of band)
        owner: Current owner account
    """
    asset_id: int
    metadata: Optional[str]
    owner: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asset_id": self.asset_id,
            "metadata": self.metadata,
            "owner": self.owner,
        }


# Marks a key that was absent before a change
_MISSING = object()


class RegistryStore:
    """
    Id counter plus metadata and ownership maps.

    With a store_dir the state is loaded on construction and written by
    save(). Without one the store lives in memory only.
    """

    def __init__(self, store_dir: Path | str | None = None):
        self.store_dir = Path(store_dir) if store_dir is not None else None
        self.administrator: Optional[str] = None
        self.next_id = 0
        self._metadata: Dict[int, str] = {}
        self._owners: Dict[int, str] = {}
        self._undo: Optional[List[Tuple[str, Optional[int], Any]]] = None
        if self.store_dir is not None:
            self.store_dir.mkdir(parents=True, exist_ok=True)
            self._load()

    @property
    def persistent(self) -> bool:
        return self.store_dir is not None

    def _index_path(self) -> Path:
        return self.store_dir / "registry.json"

    def _load(self):
        """Load state from disk."""
        index_path = self._index_path()
        if not index_path.exists():
            return
        try:
            with open(index_path) as f:
                data = json.load(f)
            administrator = data.get("administrator")
            next_id = int(data.get("next_id", 0))
            metadata = {int(k): v for k, v in data.get("metadata", {}).items()}
            owners = {int(k): v for k, v in data.get("owners", {}).items()}
        except (json.JSONDecodeError, AttributeError, TypeError, ValueError) as e:
            raise StoreCorrupted(index_path, str(e)) from e

        for asset_id in list(owners) + list(metadata):
            if not 1 <= asset_id <= next_id:
                raise StoreCorrupted(
                    index_path, f"asset {asset_id} outside issued range 1..{next_id}"
                )

        self.administrator = administrator
        self.next_id = next_id
        self._metadata = metadata
        self._owners = owners
        logger.debug(f"Loaded registry index: {len(owners)} live assets, next_id={next_id}")

    def save(self):
        """Write state to disk (no-op for an in-memory store)."""
        if self.store_dir is None:
            return
        data = {
            "version": INDEX_VERSION,
            "administrator": self.administrator,
            "next_id": self.next_id,
            "metadata": {str(k): v for k, v in sorted(self._metadata.items())},
            "owners": {str(k): v for k, v in sorted(self._owners.items())},
        }
        # Write beside the index, then swap it in
        fd, tmp_path = tempfile.mkstemp(dir=self.store_dir, prefix=".registry.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self._index_path())
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.debug(f"Saved registry index: next_id={self.next_id}")

    def bind_administrator(self, administrator: str):
        """
        Record the administrator for a new store, or check it on reopen.

        Raises:
            AdministratorMismatch: The store was created for someone else
        """
        if self.administrator is None:
            self.administrator = administrator
            self.save()
        elif self.administrator != administrator:
            raise AdministratorMismatch(administrator, self.administrator)

    def begin(self):
        """Start recording prior values so the next changes can be undone."""
        self._undo = []

    def commit(self):
        """Keep the changes made since begin()."""
        self._undo = None

    def rollback(self):
        """Undo every change made since begin(), newest first."""
        undo, self._undo = self._undo or [], None
        for name, key, prior in reversed(undo):
            if name == "next_id":
                self.next_id = prior
                continue
            target = self._owners if name == "owners" else self._metadata
            if prior is _MISSING:
                target.pop(key, None)
            else:
                target[key] = prior

    def _remember(self, name: str, key: Optional[int] = None):
        if self._undo is None:
            return
        if name == "next_id":
            self._undo.append((name, None, self.next_id))
        else:
            target = self._owners if name == "owners" else self._metadata
            self._undo.append((name, key, target.get(key, _MISSING)))

    def allocate_id(self) -> int:
        """Issue the next asset id."""
        self._remember("next_id")
        self.next_id += 1
        return self.next_id

    def get_owner(self, asset_id: Any) -> Optional[str]:
        if not _is_asset_id(asset_id):
            return None
        return self._owners.get(asset_id)

    def get_metadata(self, asset_id: Any) -> Optional[str]:
        if not _is_asset_id(asset_id):
            return None
        return self._metadata.get(asset_id)

    def has_owner(self, asset_id: Any) -> bool:
        return _is_asset_id(asset_id) and asset_id in self._owners

    def set_owner(self, asset_id: int, owner: str):
        self._remember("owners", asset_id)
        self._owners[asset_id] = owner

    def set_metadata(self, asset_id: int, metadata: str):
        self._remember("metadata", asset_id)
        self._metadata[asset_id] = metadata

    def delete_owner(self, asset_id: int) -> bool:
        self._remember("owners", asset_id)
        return self._owners.pop(asset_id, None) is not None

    def delete_metadata(self, asset_id: int) -> bool:
        self._remember("metadata", asset_id)
        return self._metadata.pop(asset_id, None) is not None

    def get_asset(self, asset_id: Any) -> Optional[Asset]:
        owner = self.get_owner(asset_id)
        if owner is None:
            return None
        return Asset(asset_id=asset_id, metadata=self._metadata.get(asset_id), owner=owner)

    def owner_items(self) -> Iterator[Tuple[int, str]]:
        """Iterate (asset_id, owner) pairs in ascending id order."""
        return iter(sorted(self._owners.items()))

    def __len__(self) -> int:
        return len(self._owners)

    def __contains__(self, asset_id: Any) -> bool:
        return self.has_owner(asset_id)
