"""
Media loading for slot rendering.

Fetches and decodes user media from data URLs, http(s) URLs or local
paths. Decoding can run on a small thread pool; the caller receives a
future and consumes the result on its own loop.
"""

import base64
import binascii
import io
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import requests
from PIL import Image, UnidentifiedImageError

from ..constants import APP_NAME, HTTP_TIMEOUT, VERSION
from ..logging_config import LogManager
from .errors import DecodeError

logger = LogManager().get_logger("layout.image")


@dataclass
class DecodedMedia:
    """A decoded image ready to draw."""
    source: str
    image: Image.Image

    @property
    def size(self) -> Tuple[int, int]:
        return self.image.size


class ImageProcessor:
    """
    Decodes media sources into RGBA Pillow images.

    Supported sources:
    - ``data:image/...;base64,...`` URLs
    - ``http://`` and ``https://`` URLs (fetched with requests)
    - Local file paths
    """

    USER_AGENT = f"{APP_NAME}/{VERSION}"

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = HTTP_TIMEOUT):
        self.session = session or requests.Session()
        self.session.headers.update({'User-Agent': self.USER_AGENT})
        self.timeout = timeout

    def load(self, source: str) -> DecodedMedia:
        """
        Fetch and decode a media source.

        Raises:
            DecodeError: if the source cannot be read or is not an image
        """
        data = self._read_bytes(source)
        image = self.decode_bytes(data, source)
        logger.debug(f"Decoded media {source[:60]!r}: {image.size[0]}x{image.size[1]}")
        return DecodedMedia(source=source, image=image)

    def _read_bytes(self, source: str) -> bytes:
        if not source:
            raise DecodeError(source, "empty media source")

        if source.startswith("data:"):
            header, _, payload = source.partition(",")
            if not payload:
                raise DecodeError(source[:40], "malformed data URL")
            try:
                if header.endswith(";base64"):
                    return base64.b64decode(payload, validate=True)
                return payload.encode("utf-8")
            except (binascii.Error, ValueError) as e:
                raise DecodeError(source[:40], f"invalid base64 payload: {e}") from e

        if source.startswith(("http://", "https://")):
            try:
                response = self.session.get(source, timeout=self.timeout)
                response.raise_for_status()
                return response.content
            except requests.RequestException as e:
                raise DecodeError(source, f"download failed: {e}") from e

        path = Path(source)
        try:
            return path.read_bytes()
        except OSError as e:
            raise DecodeError(source, f"cannot read file: {e}") from e

    @staticmethod
    def decode_bytes(data: bytes, source: str = "<bytes>") -> Image.Image:
        """Decode image bytes into an RGBA image."""
        try:
            img = Image.open(io.BytesIO(data))
            img.load()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise DecodeError(source[:60], f"not a decodable image: {e}") from e

        # Convert to RGBA for alpha channel support
        if img.mode != 'RGBA':
            img = img.convert('RGBA')
        return img


class MediaLoader:
    """Runs ImageProcessor.load off the caller's thread."""

    def __init__(self, processor: Optional[ImageProcessor] = None, max_workers: int = 2):
        self.processor = processor or ImageProcessor()
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="media-decode")

    def load_async(self, source: str) -> "Future[DecodedMedia]":
        """Start decoding; the future raises DecodeError on failure."""
        logger.debug(f"Queued media decode: {source[:60]!r}")
        return self.executor.submit(self.processor.load, source)

    def shutdown(self) -> None:
        self.executor.shutdown(wait=False)
