"""Pydantic request/response schemas for the FastAPI endpoints.

Field names are snake_case in Python and camelCase on the wire.
"""

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class CamelModel(BaseModel):
    """Base schema that reads and writes camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


def _check_email(value: str) -> str:
    value = value.strip()
    if not _EMAIL_RE.match(value):
        raise ValueError("Invalid email address")
    return value.lower()


class MessageResponse(CamelModel):
    message: str


class SignUpRequest(CamelModel):
    full_name: str = Field(min_length=1)
    email: str
    password: str = Field(min_length=1)
    phone: str | None = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _check_email(value)


class SignInRequest(CamelModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class SignedInUser(CamelModel):
    full_name: str


class SignInResponse(CamelModel):
    message: str
    user: SignedInUser


class ProfileResponse(CamelModel):
    id: int
    full_name: str
    email: str
    phone: str | None = None
    wallet_address: str | None = None
    created_at: datetime


class ProfileUpdateRequest(CamelModel):
    full_name: str | None = None
    email: str | None = None
    phone: str | None = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str | None) -> str | None:
        return None if value is None else _check_email(value)


class LinkWalletRequest(CamelModel):
    wallet_address: str = Field(min_length=1)


class LinkWalletResponse(CamelModel):
    message: str
    wallet_address: str


class SettingsResponse(CamelModel):
    email_notifications: bool
    sms_notifications: bool


class SettingsUpdateRequest(CamelModel):
    email_notifications: bool | None = None
    sms_notifications: bool | None = None


class StatsResponse(CamelModel):
    total_verified: int
    successful_verifications: int
    pending_requests: int


class ContactRequest(CamelModel):
    subject: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1)


class ContactMessageResponse(CamelModel):
    subject: str
    message: str
    submitted_at: datetime


class VerifyResponse(CamelModel):
    """Outcome of ``POST /verify``; artifact fields are null when rejected."""

    message: str
    verification_status: str
    file_hash: str
    transaction_hash: str | None = None
    qr_code_data_url: str | None = None
    qr_code_link: str | None = None
    document_cid: str | None = Field(default=None, alias="documentCID")


class QRCheckResponse(CamelModel):
    verification_status: str
    doc_type: str
    submitted_at: datetime
    message: str


class SignatureVerifyRequest(CamelModel):
    # optional so missing fields surface as a single InvalidInput
    qr_id: str | None = None
    wallet_address: str | None = None
    signature: str | None = None
    message: str | None = None


class DisclosureResponse(CamelModel):
    message: str
    doc_type: str
    doc_number: str
    file_hash: str
    transaction_hash: str | None = None
    verification_status: str
    document_cid: str | None = Field(default=None, alias="documentCID")


class VerificationSummary(CamelModel):
    id: str
    doc_type: str
    doc_number: str
    verification_status: str
    file_hash: str
    transaction_hash: str | None = None
    document_cid: str | None = Field(default=None, alias="documentCID")
    qr_id: str | None = None
    submitted_at: datetime


class HealthResponse(CamelModel):
    status: str
    version: str
    ocr_ready: bool
