"""Tests for the owner-gated disclosure of verification details."""

import pytest
from eth_account import Account
from sqlalchemy.orm import Session

from docverify.core.disclosure import (
    DisclosureGate,
    DisclosureRequest,
    checksum,
    recover_signer,
)
from docverify.core.errors import (
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    UnauthorizedError,
)
from docverify.db.models import User, VerificationRecord, VerificationStatus
from docverify.db.repository import UserRepository, VerificationRecordStore

MESSAGE = "Verify ownership of document QR qr-1 at 2026-10-19T09:00:00Z"


@pytest.fixture
def issued(records: VerificationRecordStore, owner: User) -> VerificationRecord:
    return records.add(
        VerificationRecord(
            qr_id="qr-1",
            doc_type="passport",
            doc_number="AB123",
            file_hash="0x" + "cd" * 32,
            transaction_hash="0x" + "ab" * 32,
            document_cid="bafyowner",
            verification_status=VerificationStatus.VERIFIED.value,
            user_id=owner.id,
        )
    )


@pytest.fixture
def users(db: Session) -> UserRepository:
    return UserRepository(db)


def _request(sign, key: str, qr_id: str = "qr-1", **overrides) -> DisclosureRequest:
    fields = {
        "qr_id": qr_id,
        "wallet_address": Account.from_key(key).address,
        "message": MESSAGE,
        "signature": sign(key, MESSAGE),
    }
    fields.update(overrides)
    return DisclosureRequest(**fields)


class TestChecksum:
    """Tests for address normalization."""

    def test_lowercase_is_checksummed(self, owner_key: str) -> None:
        address = Account.from_key(owner_key).address
        assert checksum(address.lower()) == address

    @pytest.mark.parametrize("value", ["", "0x1234", "not-an-address"])
    def test_invalid(self, value: str) -> None:
        with pytest.raises(InvalidInputError):
            checksum(value)


class TestRecoverSigner:
    """Tests for signature recovery."""

    def test_recovers_signer(self, sign, owner_key: str) -> None:
        signature = sign(owner_key, MESSAGE)
        assert recover_signer(MESSAGE, signature) == Account.from_key(owner_key).address

    def test_malformed_signature(self) -> None:
        with pytest.raises(UnauthorizedError, match="Invalid signature"):
            recover_signer(MESSAGE, "0xdeadbeef")


class TestDisclosureGate:
    """Tests for DisclosureGate.disclose."""

    def test_owner_receives_record(
        self,
        sign,
        owner_key: str,
        issued: VerificationRecord,
        records: VerificationRecordStore,
        users: UserRepository,
    ) -> None:
        record = DisclosureGate().disclose(_request(sign, owner_key), records, users)
        assert record.id == issued.id
        assert record.document_cid == "bafyowner"

    def test_lowercase_claimed_address_accepted(
        self,
        sign,
        owner_key: str,
        issued: VerificationRecord,
        records: VerificationRecordStore,
        users: UserRepository,
    ) -> None:
        request = _request(
            sign,
            owner_key,
            wallet_address=Account.from_key(owner_key).address.lower(),
        )
        assert DisclosureGate().disclose(request, records, users).id == issued.id

    def test_stranger_is_forbidden(
        self,
        sign,
        stranger_key: str,
        issued: VerificationRecord,
        records: VerificationRecordStore,
        users: UserRepository,
    ) -> None:
        with pytest.raises(ForbiddenError, match="Only the document owner"):
            DisclosureGate().disclose(_request(sign, stranger_key), records, users)

    def test_tampered_message_is_unauthorized(
        self,
        sign,
        owner_key: str,
        issued: VerificationRecord,
        records: VerificationRecordStore,
        users: UserRepository,
    ) -> None:
        request = _request(sign, owner_key, message=MESSAGE + " (edited)")
        with pytest.raises(UnauthorizedError, match="does not match"):
            DisclosureGate().disclose(request, records, users)

    def test_claimed_wallet_differs_from_signer(
        self,
        sign,
        owner_key: str,
        stranger_key: str,
        issued: VerificationRecord,
        records: VerificationRecordStore,
        users: UserRepository,
    ) -> None:
        request = _request(
            sign, stranger_key, wallet_address=Account.from_key(owner_key).address
        )
        with pytest.raises(UnauthorizedError):
            DisclosureGate().disclose(request, records, users)

    def test_unknown_qr_id(
        self,
        sign,
        owner_key: str,
        records: VerificationRecordStore,
        users: UserRepository,
    ) -> None:
        with pytest.raises(NotFoundError):
            DisclosureGate().disclose(
                _request(sign, owner_key, qr_id="missing"), records, users
            )

    def test_owner_without_wallet_is_forbidden(
        self,
        sign,
        owner_key: str,
        records: VerificationRecordStore,
        users: UserRepository,
    ) -> None:
        walletless = users.create("Grace", "grace@example.com", "hash")
        records.add(
            VerificationRecord(
                qr_id="qr-2",
                doc_type="passport",
                doc_number="CD456",
                file_hash="0x00",
                transaction_hash="0x01",
                document_cid="bafygrace",
                verification_status=VerificationStatus.VERIFIED.value,
                user_id=walletless.id,
            )
        )
        with pytest.raises(ForbiddenError, match="has not linked a wallet"):
            DisclosureGate().disclose(
                _request(sign, owner_key, qr_id="qr-2"), records, users
            )

    @pytest.mark.parametrize("field", ["qr_id", "wallet_address", "message", "signature"])
    def test_missing_field(
        self,
        sign,
        owner_key: str,
        records: VerificationRecordStore,
        users: UserRepository,
        field: str,
    ) -> None:
        request = _request(sign, owner_key, **{field: None})
        with pytest.raises(InvalidInputError, match="Missing required fields"):
            DisclosureGate().disclose(request, records, users)

    def test_malformed_address(
        self,
        sign,
        owner_key: str,
        records: VerificationRecordStore,
        users: UserRepository,
    ) -> None:
        request = _request(sign, owner_key, wallet_address="0xnope")
        with pytest.raises(InvalidInputError, match="Invalid wallet address"):
            DisclosureGate().disclose(request, records, users)

    def test_malformed_signature(
        self,
        owner_key: str,
        records: VerificationRecordStore,
        users: UserRepository,
    ) -> None:
        request = DisclosureRequest(
            qr_id="qr-1",
            wallet_address=Account.from_key(owner_key).address,
            message=MESSAGE,
            signature="0x1234",
        )
        with pytest.raises(UnauthorizedError, match="Invalid signature"):
            DisclosureGate().disclose(request, records, users)
