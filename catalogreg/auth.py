# catalogreg/auth.py
"""
Authorization guard.

Every check is derived from current store state at call time. Changing
an ownership record is all it takes to change who may act on an asset.
"""

import logging
from typing import Any

from .errors import AdminRequired, PermissionDenied

logger = logging.getLogger(__name__)


class AuthorizationGuard:
    """Decides whether a caller is the administrator or an asset's owner."""

    def __init__(self, administrator: str, store):
        self._administrator = administrator
        self._store = store

    @property
    def administrator(self) -> str:
        return self._administrator

    def is_admin(self, caller: Any) -> bool:
        return caller == self._administrator

    def is_owner(self, asset_id: Any, caller: Any) -> bool:
        """True iff an ownership record exists for asset_id and equals caller."""
        owner = self._store.get_owner(asset_id)
        return owner is not None and owner == caller

    def require_admin(self, caller: Any):
        if not self.is_admin(caller):
            logger.debug(f"Admin-only operation refused for {caller!r}")
            raise AdminRequired(caller)

    def require_owner(self, asset_id: Any, caller: Any):
        if not self.is_owner(asset_id, caller):
            logger.debug(f"Owner-only operation on asset {asset_id!r} refused for {caller!r}")
            raise PermissionDenied(asset_id, caller)
