"""Error taxonomy for the photo booth core"""


class BoothError(Exception):
    """Base class for every failure the booth reports to a caller.

    ``code`` is the machine-readable kind surfaced by the tool layer.
    """
    code = "BoothError"

    def to_dict(self) -> dict:
        return {"error": str(self), "code": self.code}


class InvalidSource(BoothError):
    """Camera frame not available yet (no stream, or zero width/height)"""
    code = "InvalidSource"


class OverlayUnavailable(BoothError):
    """Selected overlay could not be resolved or decoded"""
    code = "OverlayUnavailable"


class TooMany(BoothError):
    """Too many overlay payloads in a single upload"""
    code = "TooMany"


class EmptyUpload(BoothError):
    """Upload carried no payload, or an empty one"""
    code = "EmptyUpload"


class PayloadTooLarge(BoothError):
    """A payload exceeded the configured size limit"""
    code = "PayloadTooLarge"


class InvalidPayload(BoothError):
    """Payload could not be decoded (not base64)"""
    code = "InvalidPayload"


class NotFound(BoothError):
    code = "NotFound"


class InvalidName(BoothError):
    """Asset name is empty or resolves outside the store root"""
    code = "InvalidName"


class EncodingFailed(BoothError):
    code = "EncodingFailed"


class Unauthorized(BoothError):
    code = "Unauthorized"
