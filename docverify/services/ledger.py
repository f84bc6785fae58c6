"""Anchoring file hashes on an EVM chain.

The hash is written as the calldata of a zero-value transaction the service
account sends to itself; the transaction hash is the anchor. A mined but
reverted transaction is reported as ``None``. Any exception raised while
building, signing, sending or waiting is wrapped in :class:`LedgerError`.
"""

from web3 import Web3

from docverify.core.errors import LedgerError
from docverify.utils.config import LedgerConfig
from docverify.utils.logger import get_logger

logger = get_logger(__name__)


def keccak_hex(content: bytes) -> str:
    """Keccak-256 digest of raw bytes as ``0x``-prefixed hex."""
    return Web3.keccak(content).to_0x_hex()


class Web3LedgerAnchor:
    """Ledger anchor that submits signed transactions over JSON-RPC.

    Args:
        config: Ledger configuration section.
        web3: Optional pre-built client, used by tests.
    """

    def __init__(self, config: LedgerConfig, web3: Web3 | None = None) -> None:
        self.config = config
        self.web3 = web3 or Web3(
            Web3.HTTPProvider(
                config.rpc_url,
                request_kwargs={"timeout": config.request_timeout_s},
            )
        )

    def _account(self):
        if not self.config.private_key:
            raise LedgerError("Ledger private key is not configured")

        try:
            account = self.web3.eth.account.from_key(self.config.private_key)
        except ValueError as exc:
            raise LedgerError("Ledger private key is malformed") from exc
        configured = self.config.account_address
        if configured and Web3.to_checksum_address(configured) != account.address:
            raise LedgerError(
                f"Private key does not control configured account {configured}"
            )
        return account

    def anchor(self, digest: str) -> str | None:
        """Record a digest on chain.

        Args:
            digest: ``0x``-prefixed hex digest to embed as calldata.

        Returns:
            The transaction hash, or ``None`` if the transaction reverted.

        Raises:
            LedgerError: On configuration, network, signing or timeout errors.
        """
        account = self._account()
        eth = self.web3.eth

        try:
            tx = {
                "nonce": eth.get_transaction_count(account.address, "pending"),
                "gas": self.config.gas_limit,
                "gasPrice": eth.gas_price,
                "to": account.address,
                "value": 0,
                "data": digest,
                "chainId": self.config.chain_id or eth.chain_id,
            }
            signed = eth.account.sign_transaction(tx, account.key)
            tx_hash = eth.send_raw_transaction(signed.raw_transaction)
            receipt = eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.config.receipt_timeout_s
            )
        except Exception as exc:
            raise LedgerError(f"Blockchain transaction failed: {exc}") from exc

        tx_hex = Web3.to_hex(tx_hash)
        if receipt["status"] != 1:
            logger.error("Anchor transaction %s reverted", tx_hex)
            return None

        logger.info("Anchored %s in transaction %s", digest, tx_hex)
        return tx_hex
