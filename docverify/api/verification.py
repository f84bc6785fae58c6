"""Document verification and QR endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from docverify.core.disclosure import DisclosureRequest
from docverify.core.errors import NotFoundError
from docverify.core.pipeline import VerificationRequest
from docverify.db.models import User, VerificationRecord
from docverify.db.repository import (
    AuthorizationRegistry,
    UserRepository,
    VerificationRecordStore,
)
from docverify.utils.logger import get_logger

from .deps import Services, get_current_user, get_db, get_services
from .schemas import (
    DisclosureResponse,
    QRCheckResponse,
    SignatureVerifyRequest,
    VerificationSummary,
    VerifyResponse,
)

logger = get_logger(__name__)

router = APIRouter(tags=["Verification"])


@router.post("/verify", response_model=VerifyResponse)
async def verify_document(
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
    document: Annotated[UploadFile | None, File()] = None,
    doc_type: Annotated[str | None, Form(alias="docType")] = None,
    doc_number: Annotated[str | None, Form(alias="docNumber")] = None,
):
    """Verify an uploaded document and issue a QR code when it passes.

    Returns 200 with the artifacts when verified, 404 with the file hash
    and null artifacts when rejected.
    """
    services.worker.ensure_ready()

    content = await document.read() if document is not None else None
    request = VerificationRequest(
        content=content,
        filename=(document.filename if document else None) or "document",
        doc_type=doc_type,
        doc_number=doc_number,
        user_id=user.id,
    )

    outcome = await run_in_threadpool(
        services.pipeline.verify,
        request,
        AuthorizationRegistry(db),
        VerificationRecordStore(db),
    )
    logger.info(
        "Verification of %s by user %s: %s", doc_number, user.id, outcome.status.value
    )

    body = VerifyResponse(
        message=outcome.message,
        verification_status=outcome.status.value,
        file_hash=outcome.file_hash,
        transaction_hash=outcome.transaction_hash,
        qr_code_data_url=outcome.qr_code_data_url,
        qr_code_link=outcome.qr_code_link,
        document_cid=outcome.document_cid,
    )
    if not outcome.verified:
        return JSONResponse(
            status_code=404, content=body.model_dump(by_alias=True, mode="json")
        )
    return body


def _public_summary(qr_id: str, db: Session) -> QRCheckResponse:
    record = VerificationRecordStore(db).get_by_qr_id(qr_id)
    if record is None:
        raise NotFoundError("Document not found or QR code is invalid.")
    return QRCheckResponse(
        verification_status=record.verification_status,
        doc_type=record.doc_type,
        submitted_at=record.submitted_at,
        message="Document record found. Sign with the owner wallet to view details.",
    )


@router.get("/qr-check", response_model=QRCheckResponse)
def qr_check(
    qr_id: Annotated[str, Query(alias="id", min_length=1)],
    db: Annotated[Session, Depends(get_db)],
) -> QRCheckResponse:
    """Public status lookup for a scanned QR code."""
    return _public_summary(qr_id, db)


@router.get("/verify-qr", response_model=QRCheckResponse)
def verify_qr_link(
    qr_id: Annotated[str, Query(alias="id", min_length=1)],
    db: Annotated[Session, Depends(get_db)],
) -> QRCheckResponse:
    """Target of the link encoded in issued QR codes."""
    return _public_summary(qr_id, db)


@router.get("/qr-image")
def qr_image(
    qr_id: Annotated[str, Query(alias="id", min_length=1)],
    db: Annotated[Session, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
) -> Response:
    """Re-render the PNG of an issued QR code from its link."""
    record = VerificationRecordStore(db).get_by_qr_id(qr_id)
    if record is None:
        raise NotFoundError("QR code not found.")
    link = services.qr_issuer.build_link(record.qr_id)
    return Response(content=services.qr_issuer.render_png(link), media_type="image/png")


@router.post("/qr-verify-signature", response_model=DisclosureResponse)
def qr_verify_signature(
    payload: SignatureVerifyRequest,
    db: Annotated[Session, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
) -> DisclosureResponse:
    """Release full verification details to the document owner's wallet."""
    record: VerificationRecord = services.gate.disclose(
        DisclosureRequest(
            qr_id=payload.qr_id,
            wallet_address=payload.wallet_address,
            message=payload.message,
            signature=payload.signature,
        ),
        VerificationRecordStore(db),
        UserRepository(db),
    )

    return DisclosureResponse(
        message="Ownership verified. Full document details released.",
        doc_type=record.doc_type,
        doc_number=record.doc_number,
        file_hash=record.file_hash,
        transaction_hash=record.transaction_hash,
        verification_status=record.verification_status,
        document_cid=record.document_cid,
    )


@router.get("/verifications", response_model=list[VerificationSummary])
def list_verifications(
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> list[VerificationSummary]:
    """Verification history of the signed-in user, newest first."""
    return [
        VerificationSummary.model_validate(record)
        for record in VerificationRecordStore(db).list_for_user(user.id)
    ]
