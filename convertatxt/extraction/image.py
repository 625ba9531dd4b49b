from __future__ import annotations

import threading
from io import BytesIO

import pytesseract
from PIL import Image, UnidentifiedImageError
from pytesseract import TesseractError, TesseractNotFoundError, get_tesseract_version, image_to_string

from convertatxt.extraction.types import ExtractionError, FormatTag


class OcrEngine:
    """Tesseract handle shared by every image extraction of a service.

    The engine is initialized on the first recognition and reused until
    ``close``. Recognitions are serialized because worker threads of a batch
    group share the same instance.
    """

    def __init__(self, language: str = "eng", tesseract_cmd: str | None = None) -> None:
        self.language = language
        self.tesseract_cmd = tesseract_cmd
        self._lock = threading.Lock()
        self._version: str | None = None
        self._closed = False

    @property
    def initialized(self) -> bool:
        return self._version is not None

    @property
    def version(self) -> str | None:
        return self._version

    def recognize(self, data: bytes) -> str:
        """Return the text recognized in the given image bytes."""

        with self._lock:
            self._ensure_ready()
            try:
                with Image.open(BytesIO(data)) as image:
                    image.load()
                    return image_to_string(image, lang=self.language)
            except UnidentifiedImageError as error:
                raise ExtractionError(FormatTag.IMAGE, "unreadable image data") from error
            except TesseractError as error:
                raise ExtractionError(FormatTag.IMAGE, str(error)) from error

    def close(self) -> None:
        with self._lock:
            self._version = None
            self._closed = True

    def _ensure_ready(self) -> None:
        if self._closed:
            raise ExtractionError(FormatTag.IMAGE, "OCR engine already closed")
        if self._version is not None:
            return
        if self.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.tesseract_cmd
        try:
            self._version = str(get_tesseract_version())
        except (TesseractNotFoundError, TesseractError, OSError) as error:
            msg = f"OCR engine unavailable: {error}"
            raise ExtractionError(FormatTag.IMAGE, msg) from error


__all__ = ["OcrEngine"]
