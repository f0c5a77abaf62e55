"""
Synacor VM — Program Image Loader

Image format:
  flat binary, even length, at most 65536 bytes
  each byte pair is one little-endian 16-bit word (low byte first)
  word i is loaded at memory address i

read_image() fetches the bytes from disk, image_to_words() validates
and converts them. Memory.load_image() is the only consumer.
"""

import logging
import struct
from pathlib import Path
from typing import List, Union

from .config import MAX_IMAGE_BYTES
from .errors import MalformedImage

log = logging.getLogger(__name__)


def read_image(path: Union[str, Path]) -> bytes:
    """Read a program image from disk. OSError propagates to the caller."""
    data = Path(path).read_bytes()
    log.debug("Read %d bytes from %s", len(data), path)
    return data


def image_to_words(data: bytes) -> List[int]:
    """Reinterpret image bytes as little-endian words.

    Raises MalformedImage on odd length or an image larger than memory.
    """
    if len(data) % 2:
        raise MalformedImage(f"image length {len(data)} is odd")
    if len(data) > MAX_IMAGE_BYTES:
        raise MalformedImage(
            f"image is {len(data)} bytes, memory holds {MAX_IMAGE_BYTES}")
    return list(struct.unpack(f'<{len(data) // 2}H', data))


def words_to_image(words: List[int]) -> bytes:
    """Inverse of image_to_words — used to build images in tools and tests."""
    return struct.pack(f'<{len(words)}H', *(w & 0xFFFF for w in words))
