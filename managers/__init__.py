"""Manager classes for the photo booth server"""

from managers.asset_store import AssetStore, FileAssetStore, MemoryAssetStore
from managers.booth_config import BoothConfig
from managers.lifecycle import AssetLifecycleCoordinator

__all__ = [
    "AssetLifecycleCoordinator",
    "AssetStore",
    "BoothConfig",
    "FileAssetStore",
    "MemoryAssetStore",
]
