# catalogreg/registry/__init__.py
"""
Catalog asset registry.

Maps positive integer asset ids to metadata and an owner account, with
a single administrator who issues and retires assets.

Example:
    registry = AssetRegistry(RegistryConfig(administrator="ADMIN"))
    asset_id = registry.create("ADMIN", "A - B - C")
    registry.transfer("ADMIN", asset_id, "addr2")
"""

from .registry import AssetRegistry
from .store import Asset, RegistryStore

__all__ = ["AssetRegistry", "Asset", "RegistryStore"]
