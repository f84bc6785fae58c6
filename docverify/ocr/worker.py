"""Long-lived text extraction worker shared by all verification requests.

The worker is created once per process and initialized in the background
at application startup. Until it reports ready, extraction requests fail
fast with :class:`ServiceUnavailableError` instead of blocking.
"""

import io
import threading
from enum import StrEnum

import numpy as np
from PIL import Image, UnidentifiedImageError

from docverify.core.errors import InvalidInputError, ServiceUnavailableError
from docverify.utils.config import OCRConfig
from docverify.utils.logger import get_logger

from .pdf_handler import PDFHandler, is_pdf
from .preprocessing import prepare_for_ocr
from .tesseract_engine import TesseractEngine

logger = get_logger(__name__)


class WorkerState(StrEnum):
    """Lifecycle states of the extraction worker."""

    STOPPED = "stopped"
    STARTING = "starting"
    READY = "ready"
    FAILED = "failed"


class TextExtractionWorker:
    """Process-wide OCR worker with an explicit init/ready/teardown lifecycle.

    Args:
        config: OCR configuration section.
    """

    def __init__(self, config: OCRConfig) -> None:
        self.config = config
        self._state = WorkerState.STOPPED
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._engine: TesseractEngine | None = None
        self._pdf_handler = PDFHandler(dpi=config.pdf_dpi)

    @property
    def state(self) -> WorkerState:
        return self._state

    @property
    def ready(self) -> bool:
        return self._state == WorkerState.READY

    def start(self) -> None:
        """Initialize the engine synchronously.

        Safe to call more than once; only the first call does work.
        """
        with self._lock:
            if self._state in (WorkerState.STARTING, WorkerState.READY):
                return
            self._state = WorkerState.STARTING

        try:
            engine = TesseractEngine(
                tesseract_cmd=self.config.tesseract_cmd,
                default_lang=self.config.default_lang,
                timeout_s=self.config.timeout_s,
            )
            version = engine.version()
        except Exception:
            logger.exception("Text extraction worker failed to start")
            self._state = WorkerState.FAILED
            return

        self._engine = engine
        self._state = WorkerState.READY
        logger.info("Text extraction worker ready (tesseract %s)", version)

    def start_background(self) -> threading.Thread:
        """Initialize the engine on a daemon thread and return immediately."""
        self._thread = threading.Thread(
            target=self.start, name="ocr-worker-init", daemon=True
        )
        self._thread.start()
        return self._thread

    def shutdown(self) -> None:
        """Release the engine; later requests see the worker as not ready."""
        with self._lock:
            self._engine = None
            self._state = WorkerState.STOPPED
        logger.info("Text extraction worker stopped")

    def ensure_ready(self) -> None:
        """Raise ServiceUnavailableError unless the worker is ready."""
        if not self.ready:
            raise ServiceUnavailableError(
                "Text extraction is not ready yet, please retry shortly."
            )

    def extract(self, content: bytes) -> str:
        """Recognize the text of an uploaded image or PDF.

        All pages of a PDF are recognized and joined with newlines.

        Raises:
            ServiceUnavailableError: If the worker is not ready.
            InvalidInputError: If the file is neither an image nor a PDF.
            TextExtractionError: If OCR fails or times out.
        """
        self.ensure_ready()
        engine = self._engine
        if engine is None:
            raise ServiceUnavailableError()

        texts = []
        for image in self._load_images(content):
            prepared = prepare_for_ocr(
                image,
                denoise=self.config.denoise_enabled,
                binarize=self.config.binarize_enabled,
            )
            result = engine.extract_text(prepared, psm=self.config.psm)
            texts.append(result.text)
        return "\n".join(texts)

    def _load_images(self, content: bytes) -> list[np.ndarray]:
        if is_pdf(content):
            return self._pdf_handler.pdf_to_images(content)
        try:
            img = Image.open(io.BytesIO(content))
            img.load()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
            raise InvalidInputError(
                "Uploaded file is not a readable image or PDF."
            ) from exc
        if img.mode not in ("L", "RGB", "RGBA"):
            img = img.convert("RGB")
        return [np.array(img)]
