"""PDF to image conversion so scanned PDFs can be OCR'd page by page."""

import numpy as np
from pdf2image import convert_from_bytes

from docverify.core.errors import TextExtractionError
from docverify.utils.logger import get_logger

logger = get_logger(__name__)

PDF_MAGIC = b"%PDF"


def is_pdf(content: bytes) -> bool:
    """Return True when the bytes start with the PDF signature."""
    return content[:4] == PDF_MAGIC


class PDFHandler:
    """Renders uploaded PDF bytes into page images.

    Args:
        dpi: Resolution for PDF rendering. Higher values produce
            better OCR results but use more memory.
    """

    def __init__(self, dpi: int = 300) -> None:
        self.dpi = dpi

    def pdf_to_images(self, content: bytes) -> list[np.ndarray]:
        """Convert PDF bytes to a list of RGB page images.

        Raises:
            TextExtractionError: If poppler fails to render the document.
        """
        try:
            pil_images = convert_from_bytes(content, dpi=self.dpi)
        except Exception as exc:
            raise TextExtractionError(f"PDF conversion failed: {exc}") from exc

        images = [np.array(img.convert("RGB")) for img in pil_images]
        logger.info("Converted PDF to %d images at %d DPI", len(images), self.dpi)
        return images
