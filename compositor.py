"""Cover-fit compositing of camera frames with decorative overlays"""

import logging
from io import BytesIO
from typing import Any, Callable, Optional

import requests
from PIL import Image, ImageOps, UnidentifiedImageError

from booth_errors import InvalidSource, NotFound, InvalidName, OverlayUnavailable
from models.asset import CropRect

logger = logging.getLogger("PhotoBooth")

OverlayFetcher = Callable[[str], bytes]


def fetch_overlay_bytes(overlay_url: str, timeout: int = 30) -> bytes:
    """Fetch overlay bytes over HTTP"""
    try:
        response = requests.get(overlay_url, timeout=timeout)
        response.raise_for_status()
        return response.content
    except requests.RequestException as e:
        logger.error(f"Failed to fetch overlay from {overlay_url}: {e}")
        raise OverlayUnavailable(f"Failed to fetch overlay {overlay_url}: {e}") from e


def compute_cover_crop(src_w: float, src_h: float, out_w: int, out_h: int) -> CropRect:
    """Centered source rectangle that fills out_w x out_h without letterboxing.

    scale = max(out_w/src_w, out_h/src_h); the longer source dimension is
    cropped symmetrically.

    Raises:
        InvalidSource: If the source reports zero width or height
        ValueError: If the output size is not positive
    """
    if not src_w or not src_h or src_w < 0 or src_h < 0:
        raise InvalidSource(f"Source frame not ready ({src_w}x{src_h})")
    if out_w <= 0 or out_h <= 0:
        raise ValueError(f"Output size must be positive, got {out_w}x{out_h}")

    scale = max(out_w / src_w, out_h / src_h)
    sw = out_w / scale
    sh = out_h / scale
    # Float rounding can overshoot the source by an ulp
    sw = min(sw, float(src_w))
    sh = min(sh, float(src_h))
    return CropRect(x=(src_w - sw) / 2, y=(src_h - sh) / 2, width=sw, height=sh, scale=scale)


def load_overlay(reference: Any, fetch: Optional[OverlayFetcher] = None) -> Image.Image:
    """Resolve an overlay reference to fully decoded pixels.

    Args:
        reference: PIL Image, raw bytes, http(s) URL, or a store name
        fetch: Callable returning bytes for a store name

    Returns:
        Decoded RGBA image

    Raises:
        OverlayUnavailable: If the reference cannot be resolved or decoded
    """
    if reference is None:
        raise OverlayUnavailable("No overlay selected")
    if isinstance(reference, Image.Image):
        return reference.convert("RGBA")

    if isinstance(reference, (bytes, bytearray)):
        data = bytes(reference)
    elif isinstance(reference, str) and reference.startswith(("http://", "https://")):
        data = fetch_overlay_bytes(reference)
    elif isinstance(reference, str):
        if fetch is None:
            raise OverlayUnavailable(f"No overlay source configured for {reference!r}")
        try:
            data = fetch(reference)
        except (NotFound, InvalidName) as e:
            raise OverlayUnavailable(f"Overlay {reference!r} unavailable: {e}") from e
    else:
        raise OverlayUnavailable(f"Unsupported overlay reference type: {type(reference).__name__}")

    try:
        with Image.open(BytesIO(data)) as img:
            img.load()
            return img.convert("RGBA")
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"Failed to decode overlay: {e}")
        raise OverlayUnavailable(f"Overlay could not be decoded: {e}") from e


def render_composite(
    source_frame: Optional[Image.Image],
    overlay_image: Image.Image,
    out_w: int,
    out_h: int,
    mirror: bool = False,
) -> Image.Image:
    """Composite source (cover-fit, optionally mirrored) under the overlay.

    Returns:
        RGBA image of exactly out_w x out_h
    """
    if source_frame is None:
        raise InvalidSource("No source frame")
    src_w, src_h = source_frame.size
    crop = compute_cover_crop(src_w, src_h, out_w, out_h)

    canvas = source_frame.convert("RGBA").resize(
        (out_w, out_h), Image.Resampling.BILINEAR, box=crop.box()
    )
    if mirror:
        canvas = ImageOps.mirror(canvas)

    overlay = overlay_image.convert("RGBA")
    if overlay.size != (out_w, out_h):
        logger.warning(
            f"Overlay is {overlay.size[0]}x{overlay.size[1]}, stretching to {out_w}x{out_h}"
        )
        overlay = overlay.resize((out_w, out_h), Image.Resampling.LANCZOS)

    return Image.alpha_composite(canvas, overlay)


def compose(
    source_frame: Optional[Image.Image],
    overlay_image: Image.Image,
    out_w: int,
    out_h: int,
    mirror: bool = False,
) -> bytes:
    """Flatten a camera frame and an overlay into PNG bytes.

    Args:
        source_frame: Camera frame exposing its native size
        overlay_image: Decoded overlay authored at the output size
        out_w: Output width in pixels
        out_h: Output height in pixels
        mirror: Flip the source horizontally (front camera)

    Returns:
        RGBA PNG bytes

    Raises:
        InvalidSource: If the frame is missing or has zero width/height
    """
    if overlay_image is None:
        raise OverlayUnavailable("No overlay image")
    result = render_composite(source_frame, overlay_image, out_w, out_h, mirror)
    output = BytesIO()
    result.save(output, format="PNG")
    logger.debug(
        f"Composited {source_frame.size[0]}x{source_frame.size[1]} frame -> {out_w}x{out_h} "
        f"(mirror={mirror}, {output.tell()} bytes)"
    )
    return output.getvalue()
