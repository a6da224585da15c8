"""Name-addressed asset stores for overlays and composited photos"""

import logging
import os
import re
import secrets
import threading
import time
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union
from urllib.parse import quote

from booth_errors import InvalidName, NotFound
from models.asset import StoredAsset

logger = logging.getLogger("PhotoBooth")

# Listing filter: only image assets are visible, case-insensitive
IMAGE_NAME_REGEX = re.compile(r"\.(png|webp|jpg|jpeg)\Z", re.IGNORECASE)
# <prefix>_<13-digit ms timestamp>_<hex suffix><ext>
GENERATED_NAME_REGEX = re.compile(r"[a-z]+_(\d{13})_[0-9a-f]+\.[a-z]+")

ACCEPTED_EXTENSIONS = (".png", ".webp", ".jpg", ".jpeg")
DEFAULT_EXTENSION = ".png"
MAX_NAME_ATTEMPTS = 16

MIME_MAP = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
}

_clock_lock = threading.Lock()
_last_timestamp_ms = 0


def next_timestamp_ms() -> int:
    """Return a millisecond timestamp that is strictly increasing within the process.

    Calls landing in the same millisecond are pushed forward by one, so
    timestamp-prefixed names sort in creation order for a single process.
    """
    global _last_timestamp_ms
    with _clock_lock:
        now = int(time.time() * 1000)
        if now <= _last_timestamp_ms:
            now = _last_timestamp_ms + 1
        _last_timestamp_ms = now
        return now


def normalize_extension(declared: Optional[str]) -> str:
    """Normalize a declared extension or filename to one of ACCEPTED_EXTENSIONS.

    Accepts "png", ".PNG" or "photo.png". Anything absent or unrecognized
    falls back to DEFAULT_EXTENSION.
    """
    if not declared:
        return DEFAULT_EXTENSION
    declared = declared.strip().lower()
    if "." in declared:
        candidate = "." + declared.rsplit(".", 1)[1]
    else:
        candidate = "." + declared
    if candidate in ACCEPTED_EXTENSIONS:
        return candidate
    return DEFAULT_EXTENSION


def generate_asset_name(prefix: str, extension: str, suffix_bytes: int = 8) -> str:
    """Generate <prefix>_<timestamp>_<random hex><ext>.

    Args:
        prefix: Namespace prefix ("frame" or "photo")
        extension: Normalized extension including the dot
        suffix_bytes: Random bytes in the suffix (hex doubles the length)

    Returns:
        Generated asset name
    """
    return f"{prefix}_{next_timestamp_ms():013d}_{secrets.token_hex(suffix_bytes)}{extension}"


def parse_created_at(name: str) -> Optional[datetime]:
    """Recover the creation time embedded in a generated name (None for foreign names)"""
    match = GENERATED_NAME_REGEX.fullmatch(name)
    if not match:
        return None
    return datetime.fromtimestamp(int(match.group(1)) / 1000)


def validate_name_syntax(name: str) -> str:
    """Reject names that cannot denote a direct child of a store.

    Raises:
        InvalidName: For empty names, separators, dot segments, NUL or absolute names
    """
    if not isinstance(name, str) or not name.strip():
        raise InvalidName("Asset name must be a non-empty string")
    if "/" in name or "\\" in name or "\x00" in name:
        raise InvalidName(f"Bad name: {name!r}")
    if name in (".", "..") or os.path.isabs(name):
        raise InvalidName(f"Bad name: {name!r}")
    return name


def canonicalize_path(path: Union[str, Path], must_exist: bool = True) -> Path:
    """Resolve path to absolute real path (handles symlinks).

    Raises:
        ValueError: If path cannot be resolved and must_exist=True
    """
    try:
        return Path(path).resolve(strict=must_exist)
    except (OSError, RuntimeError) as e:
        raise ValueError(f"Cannot resolve path {path}: {e}")


def is_within(child_path: Union[str, Path], parent_path: Union[str, Path], child_must_exist: bool = True) -> bool:
    """Check if child_path is within parent_path using real path resolution.

    Both paths are canonicalized (symlinks resolved) before comparison.
    """
    try:
        child_real = canonicalize_path(child_path, must_exist=child_must_exist)
        parent_real = canonicalize_path(parent_path, must_exist=True)
        return child_real.is_relative_to(parent_real)
    except (ValueError, OSError):
        return False


class AssetStore(ABC):
    """Write-once, name-addressed image storage.

    Subclasses provide the backing (directory, dict). Naming, listing order,
    validation order and address resolution live here so that every backing
    honors the same contract.
    """

    def __init__(self, prefix: str, address_prefix: str, suffix_bytes: int = 8):
        self.prefix = prefix
        self.address_prefix = address_prefix.rstrip("/")
        self.suffix_bytes = suffix_bytes

    def add(self, content: bytes, declared_extension: Optional[str] = None) -> StoredAsset:
        """Store content under a freshly generated name.

        Args:
            content: Full asset bytes (buffered before anything is written)
            declared_extension: Declared extension or filename, may be None

        Returns:
            StoredAsset for the new name
        """
        payload = bytes(content)
        extension = normalize_extension(declared_extension)
        for _ in range(MAX_NAME_ATTEMPTS):
            name = generate_asset_name(self.prefix, extension, self.suffix_bytes)
            if self._write_new(name, payload):
                logger.info(f"Stored {name} ({len(payload)} bytes) in {self}")
                return self._record(name, len(payload))
            logger.debug(f"Name collision on {name}, regenerating")
        raise RuntimeError(f"Could not allocate a unique name in {self} after {MAX_NAME_ATTEMPTS} attempts")

    def list(self) -> List[str]:
        """Image asset names, descending (newest-named first)"""
        names = [name for name in self._iter_names() if IMAGE_NAME_REGEX.search(name)]
        return sorted(names, reverse=True)

    def remove(self, name: str) -> None:
        """Delete a listed asset.

        Raises:
            InvalidName: If name is malformed or resolves outside the store
            NotFound: If no such asset exists
        """
        key = self._existing(name)
        self._delete(key)
        logger.info(f"Removed {name} from {self}")

    def read(self, name: str) -> bytes:
        return self._read(self._existing(name))

    def describe(self, name: str) -> StoredAsset:
        key = self._existing(name)
        return self._record(name, self._size(key))

    def describe_all(self) -> List[StoredAsset]:
        """Records for every listed name, in listing order.

        Entries that disappear or stop validating between listing and
        describing (concurrent removal, foreign files) are skipped.
        """
        records = []
        for name in self.list():
            try:
                records.append(self.describe(name))
            except (NotFound, InvalidName) as e:
                logger.debug(f"Skipping {name!r} in {self}: {e}")
        return records

    def resolve_address(self, name: str) -> str:
        """Public address for name (pure string transform)"""
        return f"{self.address_prefix}/{quote(name, safe='')}"

    def _existing(self, name: str):
        key = self._resolve(name)
        if not IMAGE_NAME_REGEX.search(name) or not self._exists(key):
            raise NotFound(f"Not found: {name}")
        return key

    def _record(self, name: str, bytes_size: int) -> StoredAsset:
        extension = "." + name.rsplit(".", 1)[-1].lower()
        return StoredAsset(
            name=name,
            address=self.resolve_address(name),
            mime_type=MIME_MAP.get(extension, "application/octet-stream"),
            bytes_size=bytes_size,
            created_at=parse_created_at(name),
        )

    # Backing hooks

    @abstractmethod
    def _write_new(self, name: str, content: bytes) -> bool:
        """Create name with content; False if name already exists"""

    @abstractmethod
    def _iter_names(self) -> Iterable[str]:
        """Names of the plain entries held directly by the store"""

    @abstractmethod
    def _resolve(self, name: str):
        """Validate name and map it to a backing key (raises InvalidName)"""

    @abstractmethod
    def _exists(self, key) -> bool:
        ...

    @abstractmethod
    def _read(self, key) -> bytes:
        ...

    @abstractmethod
    def _delete(self, key) -> None:
        ...

    @abstractmethod
    def _size(self, key) -> int:
        ...


class FileAssetStore(AssetStore):
    """Asset store backed by a single directory"""

    def __init__(self, root: Union[str, Path], prefix: str, address_prefix: str, suffix_bytes: int = 8):
        super().__init__(prefix, address_prefix, suffix_bytes)
        root = Path(root)
        root.mkdir(parents=True, exist_ok=True)
        self.root = canonicalize_path(root)
        logger.info(f"Initialized FileAssetStore at {self.root} (prefix={prefix})")

    def __str__(self):
        return f"FileAssetStore({self.root})"

    def _write_new(self, name: str, content: bytes) -> bool:
        final_path = self.root / name
        if final_path.exists():
            return False

        # Hidden temp file in the same directory; never matches the listing filter
        temp_path = self.root / f".{name}.{secrets.token_hex(4)}.tmp"
        try:
            with open(temp_path, "xb") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            # link() refuses to replace an existing name
            try:
                os.link(temp_path, final_path)
            except FileExistsError:
                return False
            return True
        finally:
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError as e:
                    logger.warning(f"Failed to clean up temp file {temp_path}: {e}")

    def _iter_names(self) -> Iterable[str]:
        # Symlinks are never listed, even when they point inside the root
        return [entry.name for entry in self.root.iterdir() if entry.is_file() and not entry.is_symlink()]

    def _resolve(self, name: str) -> Path:
        if not isinstance(name, str) or not name.strip() or "\x00" in name:
            raise InvalidName("Asset name must be a non-empty string")
        try:
            target = canonicalize_path(self.root / name, must_exist=False)
        except ValueError as e:
            raise InvalidName(f"Bad name: {name!r} ({e})")
        # Must stay a direct child of the root after resolving .., absolute parts and symlinks
        if not is_within(target, self.root, child_must_exist=False) or target.parent != self.root:
            raise InvalidName(f"Bad name: {name!r}")
        return target

    def _exists(self, key: Path) -> bool:
        return key.is_file()

    def _read(self, key: Path) -> bytes:
        return key.read_bytes()

    def _delete(self, key: Path) -> None:
        try:
            key.unlink()
        except FileNotFoundError:
            raise NotFound(f"Not found: {key.name}")

    def _size(self, key: Path) -> int:
        try:
            return key.stat().st_size
        except FileNotFoundError:
            raise NotFound(f"Not found: {key.name}")


class MemoryAssetStore(AssetStore):
    """In-process asset store (tests, ephemeral deployments)"""

    def __init__(self, prefix: str, address_prefix: str, suffix_bytes: int = 8):
        super().__init__(prefix, address_prefix, suffix_bytes)
        self._assets: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def __str__(self):
        return f"MemoryAssetStore({self.prefix})"

    def _write_new(self, name: str, content: bytes) -> bool:
        with self._lock:
            if name in self._assets:
                return False
            self._assets[name] = content
            return True

    def _iter_names(self) -> Iterable[str]:
        with self._lock:
            return list(self._assets)

    def _resolve(self, name: str) -> str:
        return validate_name_syntax(name)

    def _exists(self, key: str) -> bool:
        return key in self._assets

    def _read(self, key: str) -> bytes:
        try:
            return self._assets[key]
        except KeyError:
            raise NotFound(f"Not found: {key}")

    def _delete(self, key: str) -> None:
        with self._lock:
            if self._assets.pop(key, None) is None:
                raise NotFound(f"Not found: {key}")

    def _size(self, key: str) -> int:
        try:
            return len(self._assets[key])
        except KeyError:
            raise NotFound(f"Not found: {key}")
