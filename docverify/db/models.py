"""SQLAlchemy table definitions.

``verification_records`` is append-only. The partial unique index on
``doc_number`` for Verified rows is what guarantees a single issued QR code
per document number, even when two first-time uploads race.
"""

import uuid
from datetime import datetime, timezone
from enum import StrEnum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class VerificationStatus(StrEnum):
    """Closed set of verification outcomes. Pending is never written."""

    PENDING = "Pending"
    VERIFIED = "Verified"
    REJECTED = "Rejected"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(200), nullable=False, default="")
    email = Column(String(320), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    phone = Column(String(40), nullable=True)
    # checksummed; linked once
    wallet_address = Column(String(42), unique=True, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class UserSettings(Base):
    __tablename__ = "user_settings"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    email_notifications = Column(Boolean, nullable=False, default=True)
    sms_notifications = Column(Boolean, nullable=False, default=False)


class AuthorizedDocument(Base):
    __tablename__ = "authorized_documents"

    id = Column(Integer, primary_key=True)
    doc_number = Column(String(128), unique=True, nullable=False, index=True)
    doc_type = Column(String(128), nullable=True)


class VerificationRecord(Base):
    __tablename__ = "verification_records"

    id = Column(String(36), primary_key=True, default=_new_id)
    qr_id = Column(String(36), unique=True, nullable=True)
    doc_type = Column(String(128), nullable=False)
    doc_number = Column(String(128), nullable=False, index=True)
    file_hash = Column(String(66), nullable=False)
    transaction_hash = Column(String(66), nullable=True)
    document_cid = Column(String(128), nullable=True)
    verification_status = Column(
        String(16), nullable=False, default=VerificationStatus.PENDING.value
    )
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    submitted_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        Index(
            "uq_verified_doc_number",
            "doc_number",
            unique=True,
            sqlite_where=text("verification_status = 'Verified'"),
            postgresql_where=text("verification_status = 'Verified'"),
        ),
    )


class ContactMessage(Base):
    __tablename__ = "contact_messages"

    id = Column(Integer, primary_key=True)
    subject = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    submitted_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    submitted_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
