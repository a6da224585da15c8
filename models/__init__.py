"""Data models for the photo booth server"""

from models.asset import CropRect, LinkEncoding, PhotoSubmission, StoredAsset, UploadItem
from models.session import CaptureSession

__all__ = [
    "CaptureSession",
    "CropRect",
    "LinkEncoding",
    "PhotoSubmission",
    "StoredAsset",
    "UploadItem",
]
