# idreview/extractor.py
import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Sequence
from urllib.parse import unquote, urlparse

import httpx

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE_HINTS = ("it", "en")


class ExtractionFailed(Exception):
    """The document image could not be turned into text."""


class TextExtractor(ABC):
    @abstractmethod
    async def recognize_text(self, image_location: str, language_hints: Sequence[str] = DEFAULT_LANGUAGE_HINTS) -> str:
        """Returns the raw text recognized on the image. Raises ExtractionFailed."""


class OCRExtractor(TextExtractor):
    """
    Fetches a document image and runs it through an OCREngine.

    The engine is blocking and CPU bound, so it runs in a worker thread.
    Every failure along the way surfaces as ExtractionFailed.
    """

    def __init__(self, engine, http_client: Optional[httpx.AsyncClient] = None, timeout: float = 20.0):
        self.engine = engine
        self.http_client = http_client
        self.timeout = timeout

    async def fetch_image(self, image_location: str) -> bytes:
        try:
            parsed = urlparse(image_location)
        except ValueError as e:
            raise ExtractionFailed(f"Invalid document image location: {e}") from e

        if parsed.scheme in ("http", "https"):
            try:
                if self.http_client is not None:
                    response = await self.http_client.get(image_location, timeout=self.timeout)
                else:
                    async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                        response = await client.get(image_location)
                response.raise_for_status()
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                raise ExtractionFailed(f"Could not download document image: {e}") from e
            return response.content

        path = Path(unquote(parsed.path)) if parsed.scheme == "file" else Path(image_location)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except (OSError, ValueError) as e:
            raise ExtractionFailed(f"Could not read document image: {e}") from e

    async def recognize_text(self, image_location, language_hints=DEFAULT_LANGUAGE_HINTS):
        image_bytes = await self.fetch_image(image_location)
        if not image_bytes:
            raise ExtractionFailed("Document image is empty")

        logger.info("Running OCR on %s (%s)", image_location, "+".join(language_hints))
        try:
            return await asyncio.to_thread(self.engine.recognize, image_bytes, tuple(language_hints))
        except ValueError as e:
            raise ExtractionFailed(str(e)) from e
        except Exception as e:
            logger.exception("OCR engine failure")
            raise ExtractionFailed(f"OCR engine error: {e}") from e
