"""QR encoding of public photo addresses"""

import logging
from io import BytesIO

import qrcode
from qrcode.exceptions import DataOverflowError
from qrcode.image.pil import PilImage

from booth_errors import EncodingFailed
from models.asset import LinkEncoding

logger = logging.getLogger("PhotoBooth")

# Fixed policy: identical addresses always encode to identical bytes
ERROR_CORRECTION = "M"
MARGIN = 1
SCALE = 8

_ERROR_CORRECTION_LEVELS = {
    "L": qrcode.constants.ERROR_CORRECT_L,
    "M": qrcode.constants.ERROR_CORRECT_M,
    "Q": qrcode.constants.ERROR_CORRECT_Q,
    "H": qrcode.constants.ERROR_CORRECT_H,
}


def build_target_address(address: str, base_address: str = "") -> str:
    """Absolute target when a base is configured, else the relative address"""
    if base_address:
        return f"{base_address}{address}"
    return address


class LinkEncoder:
    """Turns an output's public address into a scannable QR code"""

    def __init__(self, base_address: str = ""):
        self.base_address = base_address or ""

    def encode(self, address: str) -> LinkEncoding:
        """Encode address as a PNG QR code.

        Raises:
            EncodingFailed: If the encoder faults (e.g. payload exceeds QR capacity)
        """
        target = build_target_address(address, self.base_address)
        try:
            image_bytes = self._render(target)
        except (DataOverflowError, ValueError) as e:
            logger.error(f"QR encoding failed for {target[:80]!r}: {e}")
            raise EncodingFailed(f"Failed to generate QR code: {e}") from e

        logger.debug(f"Encoded {target} as {len(image_bytes)} byte QR")
        return LinkEncoding(
            target_address=target,
            image_bytes=image_bytes,
            error_correction=ERROR_CORRECTION,
            scale=SCALE,
            margin=MARGIN,
        )

    def _render(self, target: str) -> bytes:
        qr = qrcode.QRCode(
            version=None,
            error_correction=_ERROR_CORRECTION_LEVELS[ERROR_CORRECTION],
            box_size=SCALE,
            border=MARGIN,
        )
        qr.add_data(target)
        qr.make(fit=True)
        image = qr.make_image(image_factory=PilImage)
        buf = BytesIO()
        image.save(buf, format="PNG")
        return buf.getvalue()
