# catalogreg/journal.py
"""
Signed, append-only journal of registry transitions.

Each successful Create, Transfer, UpdateMetadata or Retire appends one
entry. Entries are signed with the registry's RSA key so the ownership
history of an asset can be proven to a third party holding only the
public key.

Structure:
    store_dir/
        journal.json            # Append-only entry log
        keys/
            registry.private.pem
            registry.public.pem
"""

import base64
import hashlib
import json
import logging
import os
import tempfile
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from .errors import StoreCorrupted

logger = logging.getLogger(__name__)

CREATE = "Create"
TRANSFER = "Transfer"
UPDATE_METADATA = "UpdateMetadata"
RETIRE = "Retire"
ACTIONS = (CREATE, TRANSFER, UPDATE_METADATA, RETIRE)

KEY_SIZE = 2048


def _generate_keypair(key_size: int = KEY_SIZE) -> tuple[bytes, bytes]:
    """Generate an RSA key pair for signing journal entries."""
    private_key = rsa.generate_private_key(
        public_exponent=65537,
        key_size=key_size,
    )
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return private_pem, public_pem


def _canonicalize(data: Dict[str, Any]) -> str:
    """Sorted keys, no whitespace."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"))


@dataclass
class JournalEntry:
    """
    One recorded transition.

    Attributes:
        entry_id: Unique identifier
        action: Create, Transfer, UpdateMetadata or Retire
        asset_id: The asset the transition applied to
        caller: Account that invoked the transition
        data: Action-specific payload (metadata, recipient, previous owner)
        recorded_at: ISO timestamp
        signature: Base64 RSA signature over the canonical entry
    """
    entry_id: str
    action: str
    asset_id: int
    caller: str
    data: Dict[str, Any] = field(default_factory=dict)
    recorded_at: str = field(default_factory=lambda: time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()))
    signature: Optional[str] = None

    @classmethod
    def new(cls, action: str, asset_id: int, caller: str, **data) -> "JournalEntry":
        if action not in ACTIONS:
            raise ValueError(f"Unknown journal action: {action}")
        return cls(
            entry_id=str(uuid.uuid4()),
            action=action,
            asset_id=asset_id,
            caller=caller,
            data=data,
        )

    def signing_payload(self) -> bytes:
        """SHA-256 digest of the entry without its signature."""
        body = self.to_dict()
        body.pop("signature", None)
        return hashlib.sha256(_canonicalize(body).encode()).digest()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entry_id": self.entry_id,
            "action": self.action,
            "asset_id": self.asset_id,
            "caller": self.caller,
            "data": self.data,
            "recorded_at": self.recorded_at,
            "signature": self.signature,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JournalEntry":
        return cls(
            entry_id=data["entry_id"],
            action=data["action"],
            asset_id=data["asset_id"],
            caller=data["caller"],
            data=data.get("data", {}),
            recorded_at=data.get("recorded_at", ""),
            signature=data.get("signature"),
        )


class Journal:
    """
    Persistent, signed transition log.

    Without a store_dir the journal and its key pair live in memory.
    """

    def __init__(self, store_dir: Path | str | None = None, key_size: int = KEY_SIZE):
        self.store_dir = Path(store_dir) if store_dir is not None else None
        self._entries: List[JournalEntry] = []
        if self.store_dir is not None:
            self.store_dir.mkdir(parents=True, exist_ok=True)
            self._private_pem, self.public_key = self._load_or_create_keys(key_size)
            self._load()
        else:
            self._private_pem, self.public_key = _generate_keypair(key_size)
        self._private_key = serialization.load_pem_private_key(self._private_pem, password=None)

    def _log_path(self) -> Path:
        return self.store_dir / "journal.json"

    def _keys_dir(self) -> Path:
        return self.store_dir / "keys"

    def _load_or_create_keys(self, key_size: int) -> tuple[bytes, bytes]:
        keys_dir = self._keys_dir()
        private_path = keys_dir / "registry.private.pem"
        public_path = keys_dir / "registry.public.pem"
        if private_path.exists() and public_path.exists():
            return private_path.read_bytes(), public_path.read_bytes()

        keys_dir.mkdir(parents=True, exist_ok=True)
        private_pem, public_pem = _generate_keypair(key_size)
        private_path.write_bytes(private_pem)
        private_path.chmod(0o600)
        public_path.write_bytes(public_pem)
        logger.info(f"Generated journal signing key in {keys_dir}")
        return private_pem, public_pem

    def _load(self):
        """Load entries from disk."""
        log_path = self._log_path()
        if not log_path.exists():
            return
        try:
            with open(log_path) as f:
                data = json.load(f)
            self._entries = [JournalEntry.from_dict(e) for e in data.get("entries", [])]
        except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
            raise StoreCorrupted(log_path, str(e)) from e

    def _save(self):
        """Save entries to disk."""
        if self.store_dir is None:
            return
        data = {
            "version": "1.0",
            "entries": [e.to_dict() for e in self._entries],
        }
        # Write beside the log, then swap it in
        fd, tmp_path = tempfile.mkstemp(dir=self.store_dir, prefix=".journal.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self._log_path())
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def sign(self, entry: JournalEntry) -> JournalEntry:
        """Attach a signature made with the registry's private key."""
        signature_bytes = self._private_key.sign(
            entry.signing_payload(),
            padding.PKCS1v15(),
            hashes.SHA256(),
        )
        entry.signature = base64.b64encode(signature_bytes).decode("utf-8")
        return entry

    def verify(self, entry: JournalEntry, public_key_pem: Optional[bytes] = None) -> bool:
        """
        Check an entry's signature.

        Args:
            entry: The entry to check
            public_key_pem: Key to verify against (defaults to this journal's key)

        Returns:
            True if the signature is valid
        """
        if not entry.signature:
            return False
        try:
            public_key = serialization.load_pem_public_key(public_key_pem or self.public_key)
            public_key.verify(
                base64.b64decode(entry.signature),
                entry.signing_payload(),
                padding.PKCS1v15(),
                hashes.SHA256(),
            )
            return True
        except (InvalidSignature, ValueError):
            return False

    def record(self, entries: List[JournalEntry]) -> None:
        """Sign and append entries, then persist the log once."""
        if not entries:
            return
        for entry in entries:
            self.sign(entry)
        self._entries.extend(entries)
        try:
            self._save()
        except Exception:
            del self._entries[-len(entries):]
            raise
        for entry in entries:
            logger.debug(f"Journal: {entry.action} asset {entry.asset_id} by {entry.caller}")

    def get(self, entry_id: str) -> Optional[JournalEntry]:
        for e in self._entries:
            if e.entry_id == entry_id:
                return e
        return None

    def list(self) -> List[JournalEntry]:
        return list(self._entries)

    def history(self, asset_id: int) -> List[JournalEntry]:
        """Entries for one asset, oldest first."""
        return [e for e in self._entries if e.asset_id == asset_id]

    def find_by_caller(self, caller: str) -> List[JournalEntry]:
        return [e for e in self._entries if e.caller == caller]

    def __len__(self) -> int:
        return len(self._entries)
