"""MD5 fingerprints of local files with optional side-car caching."""

import hashlib
import logging
import re
from pathlib import Path
from typing import Optional

from .utils import HASH_CHUNK_SIZE

logger = logging.getLogger(__name__)

SIDECAR_SUFFIX = ".md5"

_MD5_RE = re.compile(r"^[0-9a-f]{32}$")


def calculate_md5(path: Path, chunk_size: int = HASH_CHUNK_SIZE) -> str:
    """Calculate the hex MD5 digest of a file, reading it in chunks.

    Args:
        path: File to hash
        chunk_size: Number of bytes read per step

    Returns:
        Lowercase hex digest
    """
    digest = hashlib.md5()  # noqa: S324
    with open(path, "rb") as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            digest.update(chunk)
    return digest.hexdigest()


class FingerprintCache:
    """Computes file fingerprints, reusing side-car files when up to date.

    The side-car of ``photo.jpg`` is ``photo.jpg.md5`` in the same directory.
    It is only trusted when it is at least as new as the file it describes.

    Examples:
        With persist=True the first call hashes photo.jpg and writes the hex
        digest to photo.jpg.md5; later calls read it back from there.

        >>> cache = FingerprintCache(persist=True)
        >>> md5 = cache.fingerprint_of(Path("/photos/photo.jpg"))
    """

    def __init__(self, persist: bool = False, chunk_size: int = HASH_CHUNK_SIZE):
        """Initialize the fingerprint cache.

        Args:
            persist: Write computed fingerprints to side-car files
            chunk_size: Number of bytes read per hashing step
        """
        self.persist = persist
        self.chunk_size = chunk_size
        self.computed = 0

    @staticmethod
    def sidecar_path(path: Path) -> Path:
        return path.with_name(path.name + SIDECAR_SUFFIX)

    @staticmethod
    def is_sidecar(path: Path) -> bool:
        """Check whether path is the side-car of an existing sibling file."""
        if not path.name.endswith(SIDECAR_SUFFIX):
            return False
        source = path.with_name(path.name[: -len(SIDECAR_SUFFIX)])
        return source.is_file()

    def fingerprint_of(self, path: Path) -> str:
        """Return the hex MD5 of a file.

        Args:
            path: File to fingerprint

        Returns:
            Lowercase hex digest
        """
        sidecar = self.sidecar_path(path)
        stored = self._read_sidecar(path, sidecar)
        if stored is not None:
            return stored

        fingerprint = calculate_md5(path, self.chunk_size)
        self.computed += 1
        if self.persist:
            self._write_sidecar(sidecar, fingerprint)
        return fingerprint

    def _read_sidecar(self, path: Path, sidecar: Path) -> Optional[str]:
        try:
            if path.stat().st_mtime > sidecar.stat().st_mtime:
                logger.debug("Side-car of %s is stale", path)
                return None
            value = sidecar.read_text(encoding="ascii").strip().lower()
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.debug("Cannot read side-car %s: %s", sidecar, e)
            return None

        if not _MD5_RE.match(value):
            logger.debug("Ignoring malformed side-car %s", sidecar)
            return None
        return value

    def _write_sidecar(self, sidecar: Path, fingerprint: str) -> None:
        try:
            sidecar.write_text(fingerprint, encoding="ascii")
        except OSError as e:
            logger.warning("Could not write fingerprint to %s: %s", sidecar, e)
