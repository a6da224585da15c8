"""Booth configuration with layered precedence"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Tuple

logger = logging.getLogger("PhotoBooth")

# Configuration paths
CONFIG_DIR = Path.home() / ".config" / "photo-booth"
CONFIG_FILE = CONFIG_DIR / "config.json"

HARDCODED_DEFAULTS: Dict[str, Any] = {
    "admin_token": "",
    "base_url": "",
    "uploads_root": "uploads",
    "output_width": 1080,
    "output_height": 1440,
    "max_overlays_per_upload": 10,
    "max_overlay_bytes": 10 * 1024 * 1024,
    "max_photo_bytes": 15 * 1024 * 1024,
    "camera_devices": {"user": 0, "environment": 1},
    "host": "0.0.0.0",
    "port": 3000,
}

# Settings that never leave the process through get_public_settings()
SECRET_KEYS = ("admin_token",)


def parse_output_size(value: str) -> Tuple[int, int]:
    """Parse "1080x1440" into (1080, 1440)"""
    try:
        width, height = (int(part) for part in value.lower().split("x", 1))
    except ValueError:
        raise ValueError(f"Invalid output size '{value}', expected WIDTHxHEIGHT")
    if width <= 0 or height <= 0:
        raise ValueError(f"Output size must be positive, got {value}")
    return width, height


def load_config_file(config_file: Path = CONFIG_FILE) -> Dict[str, Any]:
    """Load settings from the JSON config file (empty dict if missing or malformed)"""
    if not config_file.exists():
        return {}
    try:
        with open(config_file, "r", encoding="utf-8") as f:
            config = json.load(f)
    except (json.JSONDecodeError, IOError) as e:
        logger.warning(f"Failed to load config file {config_file}: {e}")
        return {}
    if not isinstance(config, dict):
        logger.warning(f"Ignoring config file {config_file}: top level is not an object")
        return {}
    return {key: value for key, value in config.items() if key in HARDCODED_DEFAULTS}


def get_env_settings() -> Dict[str, Any]:
    """Load settings from environment variables"""
    settings: Dict[str, Any] = {}
    admin_token = os.getenv("ADMIN_TOKEN")
    base_url = os.getenv("BASE_URL")
    uploads_root = os.getenv("PHOTO_BOOTH_UPLOADS_DIR")
    output_size = os.getenv("PHOTO_BOOTH_OUTPUT_SIZE")
    host = os.getenv("HOST")
    port = os.getenv("PORT")
    if admin_token is not None:
        settings["admin_token"] = admin_token
    if base_url is not None:
        settings["base_url"] = base_url
    if uploads_root:
        settings["uploads_root"] = uploads_root
    if output_size:
        settings["output_width"], settings["output_height"] = parse_output_size(output_size)
    if host:
        settings["host"] = host
    if port:
        settings["port"] = int(port)
    return settings


class BoothConfig:
    """Effective booth settings with precedence: explicit > env > config file > hardcoded"""

    def __init__(self, config_file: Path = CONFIG_FILE, **overrides: Any):
        unknown = set(overrides) - set(HARDCODED_DEFAULTS)
        if unknown:
            raise ValueError(f"Unknown settings: {sorted(unknown)}")

        settings = dict(HARDCODED_DEFAULTS)
        settings.update(load_config_file(config_file))
        settings.update(get_env_settings())
        settings.update({key: value for key, value in overrides.items() if value is not None})
        self._settings = settings

        self.admin_token: str = str(settings["admin_token"] or "")
        self.base_url: str = str(settings["base_url"] or "")
        self.uploads_root = Path(settings["uploads_root"])
        self.output_width = int(settings["output_width"])
        self.output_height = int(settings["output_height"])
        self.max_overlays_per_upload = int(settings["max_overlays_per_upload"])
        self.max_overlay_bytes = int(settings["max_overlay_bytes"])
        self.max_photo_bytes = int(settings["max_photo_bytes"])
        self.camera_devices: Dict[str, int] = dict(settings["camera_devices"])
        self.host: str = settings["host"]
        self.port = int(settings["port"])

        if self.output_width <= 0 or self.output_height <= 0:
            raise ValueError(f"Output size must be positive, got {self.output_width}x{self.output_height}")

        logger.info(
            f"Booth config: uploads_root={self.uploads_root} output={self.output_width}x{self.output_height} "
            f"admin={'token' if self.admin_mode_protected else 'open'}"
        )

    @property
    def frames_dir(self) -> Path:
        return self.uploads_root / "frames"

    @property
    def photos_dir(self) -> Path:
        return self.uploads_root / "photos"

    @property
    def output_size(self) -> Tuple[int, int]:
        return self.output_width, self.output_height

    @property
    def admin_mode_protected(self) -> bool:
        return bool(self.admin_token)

    def get_public_settings(self) -> Dict[str, Any]:
        """Effective settings without secrets"""
        public = {key: value for key, value in self._settings.items() if key not in SECRET_KEYS}
        public["uploads_root"] = str(self.uploads_root)
        public["admin_mode"] = "token" if self.admin_mode_protected else "open"
        return public
