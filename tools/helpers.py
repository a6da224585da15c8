"""Shared helper functions for tool implementations"""

import base64
import binascii
import hmac
import logging
from typing import Any, Dict, List, Optional

from booth_errors import BoothError, EmptyUpload, InvalidPayload, Unauthorized
from models.asset import UploadItem

logger = logging.getLogger("PhotoBooth")


def require_admin(presented: Optional[str], configured: str) -> None:
    """Authorization gate for admin tools.

    No configured secret means open mode (every caller passes).

    Raises:
        Unauthorized: If a secret is configured and the presented token differs
    """
    if not configured:
        return
    if not presented or not hmac.compare_digest(presented.encode("utf-8"), configured.encode("utf-8")):
        raise Unauthorized("Unauthorized (bad admin token)")


def decode_payload(data: str, label: str = "payload") -> bytes:
    """Decode a base64 payload, accepting data: URLs.

    Raises:
        EmptyUpload: If data is missing
        InvalidPayload: If data is not valid base64
    """
    if not data:
        raise EmptyUpload(f"No {label} uploaded")
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidPayload(f"Invalid base64 {label}: {e}")


def build_upload_items(files: List[Dict[str, Any]]) -> List[UploadItem]:
    """Turn [{"filename", "data"}] dicts into UploadItems"""
    items = []
    for index, entry in enumerate(files or []):
        filename = str(entry.get("filename") or "")
        items.append(UploadItem(filename=filename, content=decode_payload(entry.get("data", ""), f"file #{index + 1}")))
    return items


def error_response(exc: Exception, action: str) -> Dict[str, Any]:
    """Error dict for a failed tool call; BoothErrors keep their kind"""
    if isinstance(exc, BoothError):
        logger.warning(f"{action} failed: {exc.code}: {exc}")
        return exc.to_dict()
    logger.exception(f"{action} failed")
    return {"error": f"{action} failed: {exc}"}
