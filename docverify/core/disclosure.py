"""Owner-gated disclosure of verification details behind a QR code.

The caller proves control of a wallet by signing a message (EIP-191
``personal_sign``). Full details are released only when that wallet is the
one linked to the account that uploaded the document. The gate is
stateless and read-only.

The challenge message carries a client-side timestamp that is not checked
here, so a captured signature stays valid until the owner's wallet changes.
"""

from dataclasses import dataclass

from eth_account import Account
from eth_account.messages import encode_defunct
from web3 import Web3

from docverify.db.models import VerificationRecord
from docverify.db.repository import UserRepository, VerificationRecordStore
from docverify.utils.logger import get_logger

from .errors import (
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    UnauthorizedError,
)

logger = get_logger(__name__)


@dataclass
class DisclosureRequest:
    qr_id: str | None
    wallet_address: str | None
    message: str | None
    signature: str | None


def checksum(address: str) -> str:
    """Canonical EIP-55 form of an address.

    Raises:
        InvalidInputError: If the value is not a 20-byte hex address.
    """
    if not Web3.is_address(address):
        raise InvalidInputError("Invalid wallet address.")
    return Web3.to_checksum_address(address)


def recover_signer(message: str, signature: str) -> str:
    """Recover the checksummed address that produced a personal_sign signature.

    Raises:
        UnauthorizedError: If the signature is malformed or unrecoverable.
    """
    try:
        return Account.recover_message(encode_defunct(text=message), signature=signature)
    except Exception as exc:
        logger.info("Signature recovery failed: %s", exc)
        raise UnauthorizedError("Invalid signature.") from exc


class DisclosureGate:
    """Releases a verification record to its owner's wallet."""

    def disclose(
        self,
        request: DisclosureRequest,
        records: VerificationRecordStore,
        users: UserRepository,
    ) -> VerificationRecord:
        """Check the signature and ownership, then return the full record.

        Raises:
            InvalidInputError: If a field is missing or the address is malformed.
            UnauthorizedError: If the signature does not recover to the
                claimed address.
            NotFoundError: If no record carries the QR identifier.
            ForbiddenError: If the owner has no linked wallet, or the signer
                is not the owner's wallet.
        """
        if not all(
            (request.qr_id, request.wallet_address, request.message, request.signature)
        ):
            raise InvalidInputError("Missing required fields.")

        claimed = checksum(request.wallet_address)
        recovered = recover_signer(request.message, request.signature)
        if recovered != claimed:
            logger.warning(
                "Signature for QR %s recovered %s, claimed %s",
                request.qr_id,
                recovered,
                claimed,
            )
            raise UnauthorizedError("Signature does not match wallet address.")

        record = records.get_by_qr_id(request.qr_id)
        if record is None:
            raise NotFoundError("Document not found.")

        owner = users.get(record.user_id)
        if owner is None or not owner.wallet_address:
            raise ForbiddenError(
                "Document owner has not linked a wallet; details cannot be released."
            )

        if checksum(owner.wallet_address) != recovered:
            logger.warning(
                "Wallet %s is not the owner of QR %s", recovered, request.qr_id
            )
            raise ForbiddenError("Only the document owner can view these details.")

        logger.info(
            "Released QR %s to owner wallet %s (message %r)",
            request.qr_id,
            recovered,
            request.message,
        )
        return record
