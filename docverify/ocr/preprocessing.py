"""Light image cleanup applied before OCR.

Uploads are phone photos and scans of ID cards, so the steps are kept
cheap: grayscale conversion, an optional median blur to knock out sensor
noise and an optional Otsu threshold for low-contrast scans.
"""

import cv2
import numpy as np

from docverify.utils.logger import get_logger

logger = get_logger(__name__)


def to_gray(image: np.ndarray) -> np.ndarray:
    """Convert an RGB/RGBA image to grayscale, passing grayscale through."""
    if image.ndim == 3:
        if image.shape[2] == 4:
            return cv2.cvtColor(image, cv2.COLOR_RGBA2GRAY)
        return cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)
    return image


def prepare_for_ocr(
    image: np.ndarray,
    denoise: bool = True,
    binarize: bool = False,
    kernel_size: int = 3,
) -> np.ndarray:
    """Prepare a document image for Tesseract.

    Args:
        image: Page image as a numpy array (RGB, RGBA or grayscale).
        denoise: Apply a median blur.
        binarize: Apply Otsu thresholding after denoising.
        kernel_size: Median blur aperture, must be odd.

    Returns:
        Grayscale (or binary) uint8 image.
    """
    result = to_gray(image)
    if result.dtype != np.uint8:
        result = cv2.normalize(result, None, 0, 255, cv2.NORM_MINMAX).astype(np.uint8)

    if denoise:
        result = cv2.medianBlur(result, kernel_size)

    if binarize:
        _, result = cv2.threshold(result, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)

    logger.debug(
        "Prepared %dx%d image (denoise=%s, binarize=%s)",
        result.shape[1],
        result.shape[0],
        denoise,
        binarize,
    )
    return result
