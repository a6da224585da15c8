"""Camera acquisition and capture session operations"""

import logging
from dataclasses import replace
from typing import Any, Callable, Dict, Optional, Protocol

import cv2
from PIL import Image

from booth_errors import InvalidSource, OverlayUnavailable
from compositor import OverlayFetcher, compose, load_overlay
from managers.lifecycle import AssetLifecycleCoordinator, submit_photo
from models.asset import PhotoSubmission
from models.session import FACING_ENVIRONMENT, FACING_USER, CaptureSession

logger = logging.getLogger("PhotoBooth")


class FrameSource(Protocol):
    """Open camera handle"""

    def read_frame(self) -> Optional[Image.Image]:
        ...

    def release(self) -> None:
        ...


CameraOpener = Callable[[str], FrameSource]


class OpenCVCamera:
    """OpenCV-backed camera handle returning Pillow frames"""

    def __init__(self, device_index: int, facing_mode: str = FACING_USER):
        self.device_index = device_index
        self.facing_mode = facing_mode
        self._cap: Optional[Any] = None

    @property
    def is_open(self) -> bool:
        return self._cap is not None

    def open(self) -> "OpenCVCamera":
        if self._cap is not None:
            return self
        logger.info(f"Opening camera {self.device_index} ({self.facing_mode})")
        cap = cv2.VideoCapture(self.device_index)
        if not cap.isOpened():
            cap.release()
            raise InvalidSource(f"Camera {self.device_index} ({self.facing_mode}) could not be opened")
        self._cap = cap
        return self

    def read_frame(self) -> Optional[Image.Image]:
        if self._cap is None:
            return None
        ok, frame = self._cap.read()
        if not ok or frame is None:
            logger.debug(f"Camera {self.device_index} returned no frame")
            return None
        frame_rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        return Image.fromarray(frame_rgb)

    def release(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.info(f"Released camera {self.device_index}")


def opencv_camera_opener(camera_devices: Dict[str, int]) -> CameraOpener:
    """Opener mapping facing modes to device indices (see BoothConfig.camera_devices)"""
    def _open(facing_mode: str) -> FrameSource:
        if facing_mode not in camera_devices:
            raise InvalidSource(f"No camera configured for facing mode {facing_mode!r}")
        return OpenCVCamera(camera_devices[facing_mode], facing_mode).open()
    return _open


def stop_camera(session: CaptureSession) -> CaptureSession:
    if session.stream is not None:
        session.stream.release()
    return replace(session, stream=None)


def start_camera(session: CaptureSession, open_camera: CameraOpener) -> CaptureSession:
    """(Re)open the camera for session.facing_mode.

    The previous handle is released before the new one is acquired, so two
    devices are never held at once.
    """
    session = stop_camera(session)
    stream = open_camera(session.facing_mode)
    return replace(session, stream=stream)


def switch_camera(session: CaptureSession, open_camera: CameraOpener) -> CaptureSession:
    """Toggle front/rear camera and restart the stream"""
    facing_mode = FACING_ENVIRONMENT if session.facing_mode == FACING_USER else FACING_USER
    session = stop_camera(session)
    return start_camera(replace(session, facing_mode=facing_mode), open_camera)


def select_overlay(session: CaptureSession, reference: Any) -> CaptureSession:
    return replace(session, selected_overlay=reference)


def capture(
    session: CaptureSession,
    out_w: int,
    out_h: int,
    fetch_overlay: Optional[OverlayFetcher] = None,
) -> bytes:
    """Grab one frame and composite it with the selected overlay.

    Args:
        session: Session with an open stream and a selected overlay
        out_w: Output width in pixels
        out_h: Output height in pixels
        fetch_overlay: Resolves store names to bytes (e.g. coordinator.read_overlay)

    Returns:
        PNG bytes; nothing is stored

    Raises:
        InvalidSource: No stream yet, or the camera has no frame ready
        OverlayUnavailable: No overlay selected, or it cannot be loaded
    """
    if session.stream is None:
        raise InvalidSource("Camera not started")
    overlay = load_overlay(session.selected_overlay, fetch_overlay)
    frame = session.stream.read_frame()
    if frame is None:
        raise InvalidSource("Camera has no frame ready")
    return compose(frame, overlay, out_w, out_h, mirror=session.mirror)


def capture_and_submit(
    coordinator: AssetLifecycleCoordinator,
    link_encoder,
    open_camera: CameraOpener,
    out_w: int,
    out_h: int,
    facing_mode: str = FACING_USER,
    overlay: Optional[str] = None,
) -> PhotoSubmission:
    """One-shot booth capture: open the camera, composite, store and encode the link.

    Args:
        coordinator: Source of overlays and owner of the output store
        link_encoder: Encoder for the stored photo's address
        open_camera: Opener for the requested facing mode
        out_w: Output width in pixels
        out_h: Output height in pixels
        facing_mode: "user" (front, mirrored) or "environment" (rear)
        overlay: Overlay name; defaults to the newest listed overlay

    Raises:
        OverlayUnavailable: No overlay given and none uploaded
        InvalidSource: Camera cannot be opened or has no frame
    """
    if overlay is None:
        overlays = coordinator.list_overlays()
        if not overlays:
            raise OverlayUnavailable("No frames uploaded")
        overlay = overlays[0].name

    session = select_overlay(CaptureSession(facing_mode=facing_mode), overlay)
    session = start_camera(session, open_camera)
    try:
        content = capture(session, out_w, out_h, coordinator.read_overlay)
    finally:
        stop_camera(session)
    return submit_photo(coordinator, link_encoder, content)
