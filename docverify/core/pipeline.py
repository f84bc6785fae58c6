"""Verification pipeline.

Drives one upload through OCR, the text match, the authorization lookup,
IPFS pinning and blockchain anchoring, then records the outcome and issues
a QR code for verified documents.

A document number that is already verified short-circuits the whole
pipeline: the stored artifacts are returned and only the QR image is
re-rendered. Work for the same document number is serialized within the
process, and the partial unique index on Verified rows catches races with
other processes; the loser of such a race returns the winner's artifacts.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Protocol

from docverify.db.models import VerificationRecord, VerificationStatus
from docverify.db.repository import (
    AuthorizationRegistry,
    DuplicateVerificationError,
    VerificationRecordStore,
)
from docverify.services.ledger import keccak_hex
from docverify.services.qr import QRIssuer
from docverify.utils.logger import get_logger

from .errors import InternalError, InvalidInputError

logger = get_logger(__name__)

VERIFIED_MESSAGE = "Document Found and Verified!"
ALREADY_VERIFIED_MESSAGE = "Document already verified. Returning existing record."
REJECTED_MESSAGE = "Document not found or invalid."


class TextExtractor(Protocol):
    def extract(self, content: bytes) -> str: ...


class ContentStore(Protocol):
    def pin(self, content: bytes, filename: str = "document") -> str | None: ...


class LedgerAnchor(Protocol):
    def anchor(self, digest: str) -> str | None: ...


@dataclass
class VerificationRequest:
    """An upload with its claimed metadata."""

    content: bytes | None
    filename: str
    doc_type: str | None
    doc_number: str | None
    user_id: int


@dataclass
class VerificationOutcome:
    """Result handed back to the caller.

    All artifact fields except ``file_hash`` are ``None`` when rejected.
    """

    message: str
    status: VerificationStatus
    file_hash: str
    transaction_hash: str | None = None
    document_cid: str | None = None
    qr_code_link: str | None = None
    qr_code_data_url: str | None = None
    reused: bool = False

    @property
    def verified(self) -> bool:
        return self.status == VerificationStatus.VERIFIED


class DocumentLocks:
    """Per-document-number mutexes for the current process."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._users: dict[str, int] = {}

    @contextmanager
    def hold(self, doc_number: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(doc_number, threading.Lock())
            self._users[doc_number] = self._users.get(doc_number, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._users[doc_number] -= 1
                if not self._users[doc_number]:
                    del self._users[doc_number]
                    del self._locks[doc_number]


def validate_request(request: VerificationRequest) -> tuple[bytes, str, str]:
    """Check the required fields are present and non-blank.

    The document number is returned as given; it is matched verbatim.

    Raises:
        InvalidInputError: If the file, type or number is missing or empty.
    """
    doc_type = (request.doc_type or "").strip()
    doc_number = request.doc_number or ""
    if not request.content or not doc_type or not doc_number.strip():
        raise InvalidInputError("All fields are required.")
    return request.content, doc_type, doc_number


class VerificationPipeline:
    """Orchestrates document verification.

    Args:
        extractor: Text extraction capability.
        content_store: Content-addressed store capability.
        ledger: Ledger anchor capability.
        qr_issuer: QR link and image builder.
        locks: Shared per-document locks. One instance per process.
    """

    def __init__(
        self,
        extractor: TextExtractor,
        content_store: ContentStore,
        ledger: LedgerAnchor,
        qr_issuer: QRIssuer,
        locks: DocumentLocks | None = None,
    ) -> None:
        self.extractor = extractor
        self.content_store = content_store
        self.ledger = ledger
        self.qr_issuer = qr_issuer
        self.locks = locks or DocumentLocks()

    def verify(
        self,
        request: VerificationRequest,
        registry: AuthorizationRegistry,
        records: VerificationRecordStore,
    ) -> VerificationOutcome:
        """Verify an uploaded document.

        Exactly one record is written per call, unless the document number
        was already verified, in which case nothing is written.

        Raises:
            InvalidInputError: If a required field or the file is missing.
            ServiceUnavailableError: If text extraction is not ready.
            InternalError: If OCR, pinning or anchoring raises.
        """
        content, doc_type, doc_number = validate_request(request)

        with self.locks.hold(doc_number):
            existing = records.find_verified(doc_number)
            if existing is not None:
                logger.info(
                    "Document %s already verified (record %s), reusing artifacts",
                    doc_number,
                    existing.id,
                )
                return self._reuse(existing)

            return self._run(request, content, doc_type, doc_number, registry, records)

    def _run(
        self,
        request: VerificationRequest,
        content: bytes,
        doc_type: str,
        doc_number: str,
        registry: AuthorizationRegistry,
        records: VerificationRecordStore,
    ) -> VerificationOutcome:
        text = self.extractor.extract(content)
        logger.debug("OCR text for %s: %r", request.filename, text)
        file_hash = keccak_hex(content)

        cid = None
        tx_hash = None
        if doc_number not in text:
            logger.info("Document number %s not found in OCR text", doc_number)
        elif registry.lookup(doc_number) is None:
            logger.info("Document number %s is not authorized", doc_number)
        else:
            cid = self.content_store.pin(content, request.filename)
            if cid is None:
                logger.warning("No CID for %s, skipping ledger anchor", doc_number)
            else:
                tx_hash = self.ledger.anchor(file_hash)
                if tx_hash is None:
                    logger.warning("No transaction hash for %s", doc_number)

        if cid is None or tx_hash is None:
            return self._reject(request, doc_type, doc_number, file_hash, records)

        return self._issue(
            request, doc_type, doc_number, file_hash, cid, tx_hash, records
        )

    def _issue(
        self,
        request: VerificationRequest,
        doc_type: str,
        doc_number: str,
        file_hash: str,
        cid: str,
        tx_hash: str,
        records: VerificationRecordStore,
    ) -> VerificationOutcome:
        qr = self.qr_issuer.issue()
        record = VerificationRecord(
            qr_id=qr.qr_id,
            doc_type=doc_type,
            doc_number=doc_number,
            file_hash=file_hash,
            transaction_hash=tx_hash,
            document_cid=cid,
            verification_status=VerificationStatus.VERIFIED.value,
            user_id=request.user_id,
        )
        try:
            records.add(record)
        except DuplicateVerificationError:
            winner = records.find_verified(doc_number)
            if winner is None:
                raise InternalError() from None
            logger.warning(
                "Document %s was verified concurrently, returning record %s",
                doc_number,
                winner.id,
            )
            return self._reuse(winner)

        logger.info("Document %s verified, QR %s issued", doc_number, qr.qr_id)
        return VerificationOutcome(
            message=VERIFIED_MESSAGE,
            status=VerificationStatus.VERIFIED,
            file_hash=file_hash,
            transaction_hash=tx_hash,
            document_cid=cid,
            qr_code_link=qr.link,
            qr_code_data_url=qr.data_url,
        )

    def _reject(
        self,
        request: VerificationRequest,
        doc_type: str,
        doc_number: str,
        file_hash: str,
        records: VerificationRecordStore,
    ) -> VerificationOutcome:
        records.add(
            VerificationRecord(
                doc_type=doc_type,
                doc_number=doc_number,
                file_hash=file_hash,
                verification_status=VerificationStatus.REJECTED.value,
                user_id=request.user_id,
            )
        )
        logger.info("Document %s rejected", doc_number)
        return VerificationOutcome(
            message=REJECTED_MESSAGE,
            status=VerificationStatus.REJECTED,
            file_hash=file_hash,
        )

    def _reuse(self, record: VerificationRecord) -> VerificationOutcome:
        link = self.qr_issuer.build_link(record.qr_id)
        return VerificationOutcome(
            message=ALREADY_VERIFIED_MESSAGE,
            status=VerificationStatus.VERIFIED,
            file_hash=record.file_hash,
            transaction_hash=record.transaction_hash,
            document_cid=record.document_cid,
            qr_code_link=link,
            qr_code_data_url=self.qr_issuer.render_data_url(link),
            reused=True,
        )
