"""Asset lifecycle coordination for overlays and composited photos"""

import logging
from typing import List, Optional, Sequence

from booth_errors import EmptyUpload, PayloadTooLarge, TooMany
from managers.asset_store import AssetStore, FileAssetStore
from managers.booth_config import BoothConfig
from models.asset import PhotoSubmission, StoredAsset, UploadItem

logger = logging.getLogger("PhotoBooth")

OVERLAY_PREFIX = "frame"
OUTPUT_PREFIX = "photo"
OVERLAY_ADDRESS_PREFIX = "/uploads/frames"
OUTPUT_ADDRESS_PREFIX = "/uploads/photos"


class AssetLifecycleCoordinator:
    """Sole mutator of the overlay and output stores"""

    def __init__(
        self,
        overlay_store: AssetStore,
        output_store: AssetStore,
        max_overlays_per_upload: int = 10,
        max_overlay_bytes: Optional[int] = None,
        max_photo_bytes: Optional[int] = None,
    ):
        self.overlay_store = overlay_store
        self.output_store = output_store
        self.max_overlays_per_upload = max_overlays_per_upload
        self.max_overlay_bytes = max_overlay_bytes
        self.max_photo_bytes = max_photo_bytes

    @classmethod
    def from_config(cls, config: BoothConfig) -> "AssetLifecycleCoordinator":
        """Build file-backed stores under config.uploads_root"""
        overlay_store = FileAssetStore(
            config.frames_dir, OVERLAY_PREFIX, OVERLAY_ADDRESS_PREFIX, suffix_bytes=8
        )
        output_store = FileAssetStore(
            config.photos_dir, OUTPUT_PREFIX, OUTPUT_ADDRESS_PREFIX, suffix_bytes=10
        )
        return cls(
            overlay_store,
            output_store,
            max_overlays_per_upload=config.max_overlays_per_upload,
            max_overlay_bytes=config.max_overlay_bytes,
            max_photo_bytes=config.max_photo_bytes,
        )

    def list_overlays(self) -> List[StoredAsset]:
        """Overlays newest-named first; an empty list means "no overlays" """
        return self.overlay_store.describe_all()

    def add_overlays(self, items: Sequence[UploadItem]) -> List[StoredAsset]:
        """Store 1..max_overlays_per_upload overlays.

        The whole batch is validated before anything is written, so a rejected
        call leaves the store unchanged.

        Raises:
            TooMany: More items than max_overlays_per_upload
            EmptyUpload: No items, or an item without content
            PayloadTooLarge: An item above max_overlay_bytes
        """
        items = list(items)
        if len(items) > self.max_overlays_per_upload:
            raise TooMany(
                f"At most {self.max_overlays_per_upload} overlays per upload, got {len(items)}"
            )
        if not items:
            raise EmptyUpload("No overlays uploaded")
        for item in items:
            self._check_payload(item.content, self.max_overlay_bytes, item.filename or "overlay")

        stored = [self.overlay_store.add(item.content, item.filename) for item in items]
        logger.info(f"Added {len(stored)} overlay(s)")
        return stored

    def remove_overlay(self, name: str) -> None:
        """Raises NotFound / InvalidName from the store unchanged"""
        self.overlay_store.remove(name)

    def read_overlay(self, name: str) -> bytes:
        return self.overlay_store.read(name)

    def record_output(self, content: bytes) -> StoredAsset:
        """Store a composited PNG and return its record (address included)"""
        self._check_payload(content, self.max_photo_bytes, "photo")
        return self.output_store.add(content, ".png")

    def read_output(self, name: str) -> bytes:
        return self.output_store.read(name)

    def _check_payload(self, content: bytes, limit: Optional[int], label: str) -> None:
        if not content:
            raise EmptyUpload(f"No content uploaded for {label}")
        if limit is not None and len(content) > limit:
            raise PayloadTooLarge(f"{label} is {len(content)} bytes, limit is {limit}")


def submit_photo(coordinator: AssetLifecycleCoordinator, link_encoder, content: bytes) -> PhotoSubmission:
    """Record a composited photo, then encode its link.

    The output is stored before encoding starts, so an EncodingFailed from
    the encoder never loses the photo.
    """
    output = coordinator.record_output(content)
    link = link_encoder.encode(output.address)
    logger.info(f"Photo {output.name} ready at {link.target_address}")
    return PhotoSubmission(output=output, link=link)
