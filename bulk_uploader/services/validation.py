"""Simple client-side image validation (extension + magic number)."""
import asyncio
import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

from ..errors import FileOpenError
from ..models import ValidationResult

logger = logging.getLogger(__name__)


# Common image format magic numbers
MAGIC_NUMBERS: Dict[str, Tuple[bytes, ...]] = {
    "bmp": (bytes.fromhex("424d"),),
    "png": (bytes.fromhex("89504e47"),),
    "gif": (bytes.fromhex("474946383761"), bytes.fromhex("474946383961")),
    "jpg": (bytes.fromhex("ffd8ff"),),
    "tif": (
        bytes.fromhex("49492a00"),
        bytes.fromhex("4d4d002a"),
        bytes.fromhex("4d4d002b"),
    ),
    "ico": (bytes.fromhex("00000100"),),
}

# Format aliases
MAGIC_NUMBERS["dib"] = MAGIC_NUMBERS["bmp"]
MAGIC_NUMBERS["jpeg"] = MAGIC_NUMBERS["jpg"]
MAGIC_NUMBERS["jpe"] = MAGIC_NUMBERS["jpg"]
MAGIC_NUMBERS["tiff"] = MAGIC_NUMBERS["tif"]


def get_file_extension(filename: Union[str, Path]) -> Optional[str]:
    """Lower-cased extension without the dot, or None."""
    ext = os.path.splitext(str(filename))[1]
    return ext[1:].lower() or None


class ImageValidator:
    """
    Client-side image validation.

    A file passes when its extension is allowed and its header matches one of
    the magic numbers known for that extension. Unknown extensions are
    considered valid since there is nothing to compare against.

    Implements IValidator protocol.
    """

    def __init__(self, allowed_types: Optional[Iterable[str]] = None):
        """
        Args:
            allowed_types: Extensions to accept, e.g. ["png", "jpg"].
                Empty or None allows any type.
        """
        self._allowed_types: List[str] = [t.lower().lstrip(".") for t in (allowed_types or [])]

    @staticmethod
    def supported_types() -> List[str]:
        """Extensions whose header can be checked."""
        return list(MAGIC_NUMBERS)

    async def classify(self, path: Union[str, Path]) -> ValidationResult:
        ext = get_file_extension(path)

        if self._allowed_types and ext not in self._allowed_types:
            return ValidationResult.NOT_ALLOWED

        magic_numbers = MAGIC_NUMBERS.get(ext) if ext else None
        if not magic_numbers:
            return ValidationResult.VALID

        header_size = max(len(m) for m in magic_numbers)
        header = await self._read_header(path, header_size)

        if any(header.startswith(magic) for magic in magic_numbers):
            return ValidationResult.VALID
        logger.debug(f"Magic number mismatch for {path}: {header.hex()}")
        return ValidationResult.INVALID

    @staticmethod
    async def _read_header(path: Union[str, Path], size: int) -> bytes:
        def _read():
            with open(path, "rb") as f:
                return f.read(size)

        try:
            return await asyncio.to_thread(_read)
        except OSError as e:
            raise FileOpenError(e.strerror or str(e), str(path)) from e
