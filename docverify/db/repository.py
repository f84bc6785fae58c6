"""Data access for users, the authorization list and verification records.

Each repository wraps one SQLAlchemy session. Writes commit immediately and
translate unique-key violations into errors the API can show to users.
"""

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from docverify.core.errors import InvalidInputError
from docverify.utils.logger import get_logger

from .models import (
    AuthorizedDocument,
    ContactMessage,
    User,
    UserSettings,
    VerificationRecord,
    VerificationStatus,
)

logger = get_logger(__name__)


class DuplicateVerificationError(Exception):
    """A Verified record for this document number was committed concurrently."""

    def __init__(self, doc_number: str) -> None:
        self.doc_number = doc_number
        super().__init__(f"Document {doc_number} is already verified")


class AuthorizationRegistry:
    """Lookup table of document numbers cleared for verification."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def lookup(self, doc_number: str) -> AuthorizedDocument | None:
        return self.session.scalars(
            select(AuthorizedDocument).where(AuthorizedDocument.doc_number == doc_number)
        ).first()

    def add(self, doc_number: str, doc_type: str | None = None) -> AuthorizedDocument:
        """Authorize a document number.

        Raises:
            InvalidInputError: If the number is already on the list.
        """
        entry = AuthorizedDocument(doc_number=doc_number, doc_type=doc_type)
        self.session.add(entry)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise InvalidInputError(
                f"Document number {doc_number} is already authorized."
            ) from exc
        logger.info("Authorized document %s (%s)", doc_number, doc_type)
        return entry


class VerificationRecordStore:
    """Append-only store of verification attempts."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def find_verified(self, doc_number: str) -> VerificationRecord | None:
        """Return the issued (Verified, with QR) record for a document number."""
        return self.session.scalars(
            select(VerificationRecord).where(
                VerificationRecord.doc_number == doc_number,
                VerificationRecord.verification_status
                == VerificationStatus.VERIFIED.value,
                VerificationRecord.qr_id.is_not(None),
            )
        ).first()

    def get_by_qr_id(self, qr_id: str) -> VerificationRecord | None:
        return self.session.scalars(
            select(VerificationRecord).where(VerificationRecord.qr_id == qr_id)
        ).first()

    def add(self, record: VerificationRecord) -> VerificationRecord:
        """Persist a new record.

        Raises:
            DuplicateVerificationError: If a Verified record for the same
                document number (or the same QR id) already exists.
        """
        self.session.add(record)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            if record.verification_status == VerificationStatus.VERIFIED.value:
                raise DuplicateVerificationError(record.doc_number) from exc
            raise
        self.session.refresh(record)
        return record

    def list_for_user(self, user_id: int) -> list[VerificationRecord]:
        return list(
            self.session.scalars(
                select(VerificationRecord)
                .where(VerificationRecord.user_id == user_id)
                .order_by(VerificationRecord.submitted_at.desc())
            )
        )

    def count_for_user(self, user_id: int, status: VerificationStatus | None = None) -> int:
        query = select(func.count(VerificationRecord.id)).where(
            VerificationRecord.user_id == user_id
        )
        if status is not None:
            query = query.where(VerificationRecord.verification_status == status.value)
        return self.session.scalar(query) or 0


class UserRepository:
    """Accounts, settings and contact messages."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: int) -> User | None:
        return self.session.get(User, user_id)

    def get_by_email(self, email: str) -> User | None:
        return self.session.scalars(select(User).where(User.email == email)).first()

    def get_by_wallet(self, wallet_address: str) -> User | None:
        return self.session.scalars(
            select(User).where(User.wallet_address == wallet_address)
        ).first()

    def create(
        self,
        full_name: str,
        email: str,
        password_hash: str,
        phone: str | None = None,
    ) -> User:
        """Create a user together with their default settings row.

        Raises:
            InvalidInputError: If the email is already registered.
        """
        user = User(
            full_name=full_name,
            email=email,
            password_hash=password_hash,
            phone=phone,
        )
        self.session.add(user)
        try:
            self.session.flush()
            self.session.add(UserSettings(user_id=user.id))
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise InvalidInputError("Email already in use or invalid data.") from exc
        return user

    def update_profile(
        self,
        user: User,
        full_name: str | None = None,
        email: str | None = None,
        phone: str | None = None,
    ) -> User:
        """Update the editable profile fields that were supplied.

        Raises:
            InvalidInputError: If the new email belongs to another user.
        """
        if full_name is not None:
            user.full_name = full_name
        if email is not None:
            user.email = email
        if phone is not None:
            user.phone = phone
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise InvalidInputError("Email already in use.") from exc
        return user

    def link_wallet(self, user: User, wallet_address: str) -> User:
        """Link a checksummed wallet address to a user, once.

        Raises:
            InvalidInputError: If the user already has a wallet, or the
                address is linked to another account.
        """
        if user.wallet_address:
            raise InvalidInputError("A wallet is already linked to this account.")
        owner = self.get_by_wallet(wallet_address)
        if owner is not None and owner.id != user.id:
            raise InvalidInputError("This wallet is already linked to another account.")

        user.wallet_address = wallet_address
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise InvalidInputError(
                "This wallet is already linked to another account."
            ) from exc
        logger.info("Linked wallet %s to user %s", wallet_address, user.id)
        return user

    def get_settings(self, user_id: int) -> UserSettings:
        """Return a user's settings, creating the default row if missing."""
        settings = self.session.scalars(
            select(UserSettings).where(UserSettings.user_id == user_id)
        ).first()
        if settings is None:
            settings = UserSettings(user_id=user_id)
            self.session.add(settings)
            self.session.commit()
        return settings

    def update_settings(
        self,
        user_id: int,
        email_notifications: bool | None = None,
        sms_notifications: bool | None = None,
    ) -> UserSettings:
        settings = self.get_settings(user_id)
        if email_notifications is not None:
            settings.email_notifications = email_notifications
        if sms_notifications is not None:
            settings.sms_notifications = sms_notifications
        self.session.commit()
        return settings

    def add_contact_message(self, user_id: int, subject: str, message: str) -> ContactMessage:
        entry = ContactMessage(subject=subject, message=message, submitted_by=user_id)
        self.session.add(entry)
        self.session.commit()
        return entry

    def list_contact_messages(self, user_id: int) -> list[ContactMessage]:
        return list(
            self.session.scalars(
                select(ContactMessage)
                .where(ContactMessage.submitted_by == user_id)
                .order_by(ContactMessage.submitted_at.desc())
            )
        )
