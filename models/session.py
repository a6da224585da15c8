"""Capture session state"""

from dataclasses import dataclass
from typing import Any, Optional

FACING_USER = "user"
FACING_ENVIRONMENT = "environment"
FACING_MODES = (FACING_USER, FACING_ENVIRONMENT)


@dataclass(frozen=True)
class CaptureSession:
    """State of one booth session, passed to and returned from capture operations.

    Attributes:
        facing_mode: "user" (front camera) or "environment" (rear camera)
        stream: Open camera handle (FrameSource) or None when stopped
        selected_overlay: Overlay reference (store name, URL, bytes or image)
    """
    facing_mode: str = FACING_USER
    stream: Optional[Any] = None
    selected_overlay: Optional[Any] = None

    def __post_init__(self):
        if self.facing_mode not in FACING_MODES:
            raise ValueError(f"facing_mode must be one of {FACING_MODES}, got {self.facing_mode!r}")

    @property
    def mirror(self) -> bool:
        """Front camera previews are mirrored, so the saved output is too"""
        return self.facing_mode == FACING_USER

    @property
    def is_streaming(self) -> bool:
        return self.stream is not None
