"""Tesseract OCR engine wrapper.

Thin layer over pytesseract that adds a bounded timeout and turns
Tesseract failures into :class:`TextExtractionError`.
"""

from dataclasses import dataclass

import numpy as np
import pytesseract
from PIL import Image

from docverify.core.errors import TextExtractionError
from docverify.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class OCRResult:
    """Recognized text for one page."""

    text: str
    language: str


class TesseractEngine:
    """Wrapper around Tesseract OCR for document text extraction.

    Args:
        tesseract_cmd: Path to the Tesseract executable.
            If ``None``, uses the system default.
        default_lang: Default OCR language code.
        timeout_s: Seconds before a single page recognition is abandoned.
    """

    def __init__(
        self,
        tesseract_cmd: str | None = None,
        default_lang: str = "eng",
        timeout_s: float = 60.0,
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.default_lang = default_lang
        self.timeout_s = timeout_s

    def version(self) -> str:
        """Return the Tesseract version, failing if the binary is missing.

        Raises:
            TextExtractionError: If Tesseract cannot be executed.
        """
        try:
            return str(pytesseract.get_tesseract_version())
        except pytesseract.TesseractNotFoundError as exc:
            raise TextExtractionError("Tesseract is not installed") from exc

    def extract_text(
        self,
        image: np.ndarray,
        lang: str | None = None,
        psm: int = 3,
    ) -> OCRResult:
        """Extract text from an image.

        Args:
            image: Input image as a numpy array.
            lang: OCR language code. Defaults to the engine default.
            psm: Tesseract page segmentation mode.

        Returns:
            OCRResult with the recognized text.

        Raises:
            TextExtractionError: On Tesseract errors or timeout.
        """
        lang = lang or self.default_lang
        pil_image = Image.fromarray(image)

        try:
            text = pytesseract.image_to_string(
                pil_image,
                lang=lang,
                config=f"--psm {psm}",
                timeout=self.timeout_s,
            )
        except RuntimeError as exc:
            # pytesseract signals a timeout with a bare RuntimeError
            raise TextExtractionError(f"OCR failed: {exc}") from exc

        logger.info("OCR recognized %d characters (lang=%s)", len(text), lang)
        return OCRResult(text=text, language=lang)
