"""Asset data models"""

import base64
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class StoredAsset:
    """Record of an overlay or output held by an asset store"""
    name: str
    address: str
    mime_type: str
    bytes_size: int
    created_at: Optional[datetime]

    def to_dict(self) -> Dict[str, Any]:
        """Wire shape used by the tool layer ({name, url})"""
        return {"name": self.name, "url": self.address}


@dataclass
class UploadItem:
    """One uploaded payload with its declared filename (may be empty)"""
    filename: str
    content: bytes


@dataclass(frozen=True)
class CropRect:
    """Source rectangle selected by cover-fit scaling (fractional pixels)"""
    x: float
    y: float
    width: float
    height: float
    scale: float

    def box(self):
        return (self.x, self.y, self.x + self.width, self.y + self.height)


@dataclass(frozen=True)
class LinkEncoding:
    """QR encoding of an output's public address"""
    target_address: str
    image_bytes: bytes  # PNG
    error_correction: str
    scale: int
    margin: int
    mime_type: str = "image/png"

    @property
    def data_url(self) -> str:
        b64 = base64.b64encode(self.image_bytes).decode("ascii")
        return f"data:{self.mime_type};base64,{b64}"


@dataclass
class PhotoSubmission:
    """Result of recording a composited photo and encoding its link"""
    output: StoredAsset
    link: LinkEncoding

    def to_dict(self) -> Dict[str, Any]:
        return {
            "photo_url": self.output.address,
            "qr_data_url": self.link.data_url,
            "target_url": self.link.target_address,
        }
