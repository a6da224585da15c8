"""Photo booth tools: overlay administration, photo submission and camera capture"""

import logging
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from camera import CameraOpener, capture_and_submit, opencv_camera_opener
from link_encoder import LinkEncoder
from managers.booth_config import BoothConfig
from managers.lifecycle import AssetLifecycleCoordinator, submit_photo as submit_photo_to_stores
from tools.helpers import build_upload_items, decode_payload, error_response, require_admin

logger = logging.getLogger("PhotoBooth")


def register_booth_tools(
    mcp: FastMCP,
    coordinator: AssetLifecycleCoordinator,
    link_encoder: LinkEncoder,
    config: BoothConfig,
    open_camera: Optional[CameraOpener] = None
):
    """Register booth tools with the MCP server"""
    if open_camera is None:
        open_camera = opencv_camera_opener(config.camera_devices)

    @mcp.tool()
    def list_overlays() -> dict:
        """List the decorative frames available to the booth, newest first.

        Returns:
            Dict with:
            - frames: List of {name, url}; empty when no frames are uploaded
            - count: Number of frames
        """
        try:
            frames = [asset.to_dict() for asset in coordinator.list_overlays()]
        except Exception as e:
            return error_response(e, "Listing frames")
        return {"frames": frames, "count": len(frames)}

    @mcp.tool()
    def add_overlays(files: List[Dict[str, Any]], admin_token: Optional[str] = None) -> dict:
        """Upload 1-10 frame images (admin).

        Args:
            files: List of {"filename": "border.png", "data": "<base64>"}. The
                filename extension (png, webp, jpg, jpeg) picks the stored
                extension; anything else is stored as .png.
            admin_token: Required when the server has ADMIN_TOKEN configured

        Returns:
            Dict with uploaded: list of {name, url}, or error/code on failure
            (Unauthorized, TooMany, EmptyUpload, PayloadTooLarge)
        """
        try:
            require_admin(admin_token, config.admin_token)
            items = build_upload_items(files)
            uploaded = coordinator.add_overlays(items)
        except Exception as e:
            return error_response(e, "Uploading frames")
        return {"uploaded": [asset.to_dict() for asset in uploaded]}

    @mcp.tool()
    def remove_overlay(name: str, admin_token: Optional[str] = None) -> dict:
        """Delete a frame by name (admin).

        Args:
            name: Frame name as returned by list_overlays
            admin_token: Required when the server has ADMIN_TOKEN configured

        Returns:
            {"ok": true}, or error/code (Unauthorized, NotFound, InvalidName)
        """
        try:
            require_admin(admin_token, config.admin_token)
            coordinator.remove_overlay(name)
        except Exception as e:
            return error_response(e, "Deleting frame")
        return {"ok": True}

    @mcp.tool()
    def submit_photo(data: str) -> dict:
        """Store a composited booth photo and return its download link and QR code.

        Args:
            data: Base64 PNG (a data: URL is accepted)

        Returns:
            Dict with:
            - photo_url: Public address of the stored photo
            - qr_data_url: data:image/png;base64 QR code pointing at target_url
            - target_url: BASE_URL + photo_url when BASE_URL is set, else photo_url
        """
        try:
            content = decode_payload(data, "photo")
            submission = submit_photo_to_stores(coordinator, link_encoder, content)
        except Exception as e:
            return error_response(e, "Submitting photo")
        return submission.to_dict()

    @mcp.tool()
    def capture_photo(facing_mode: str = "user", overlay: Optional[str] = None) -> dict:
        """Take a photo with the booth camera, frame it and return its download link.

        Args:
            facing_mode: "user" (front camera, mirrored) or "environment" (rear camera)
            overlay: Frame name from list_overlays; defaults to the newest frame

        Returns:
            Same shape as submit_photo, or error/code on failure
            (InvalidSource, OverlayUnavailable, NotFound, EncodingFailed)
        """
        out_w, out_h = config.output_size
        try:
            submission = capture_and_submit(
                coordinator,
                link_encoder,
                open_camera,
                out_w,
                out_h,
                facing_mode=facing_mode,
                overlay=overlay,
            )
        except Exception as e:
            return error_response(e, "Capturing photo")
        return submission.to_dict()
