"""Pinning uploaded documents to IPFS through the Pinata API.

A response without a CID is reported as ``None`` so the pipeline can
reject the verification. Transport errors, timeouts and credential
failures raise :class:`ContentStoreError`.
"""

import requests

from docverify.core.errors import ContentStoreError
from docverify.utils.config import ContentStoreConfig
from docverify.utils.logger import get_logger

logger = get_logger(__name__)

_AUTH_FAILURES = (401, 403)


class PinataStore:
    """Content-addressed store backed by Pinata's ``pinFileToIPFS``.

    Args:
        config: Content store configuration section.
        session: Optional ``requests.Session`` to reuse connections.
    """

    def __init__(
        self,
        config: ContentStoreConfig,
        session: requests.Session | None = None,
    ) -> None:
        self.config = config
        self.http = session or requests.Session()

    def gateway_url(self, cid: str) -> str:
        return f"{self.config.gateway_url.rstrip('/')}/{cid}"

    def pin(self, content: bytes, filename: str = "document") -> str | None:
        """Upload a file and return its CID.

        Args:
            content: Raw file bytes.
            filename: Name recorded by Pinata for the pin.

        Returns:
            The IPFS CID, or ``None`` if Pinata answered without one.

        Raises:
            ContentStoreError: On missing credentials, authentication
                failure, network error or timeout.
        """
        if not self.config.jwt:
            raise ContentStoreError("Pinata JWT is not configured")

        try:
            response = self.http.post(
                self.config.api_url,
                files={"file": (filename, content)},
                headers={"Authorization": f"Bearer {self.config.jwt}"},
                timeout=self.config.timeout_s,
            )
        except requests.RequestException as exc:
            raise ContentStoreError(f"Pinata request failed: {exc}") from exc

        if response.status_code in _AUTH_FAILURES:
            raise ContentStoreError(
                f"Pinata rejected credentials (HTTP {response.status_code})"
            )

        if not response.ok:
            logger.error(
                "Pinata upload failed (HTTP %d): %s",
                response.status_code,
                response.text,
            )
            return None

        try:
            cid = response.json().get("IpfsHash")
        except ValueError:
            logger.error("Pinata returned a non-JSON body: %s", response.text)
            return None

        if not cid:
            logger.error("Pinata response carried no IpfsHash")
            return None

        logger.info("Pinned %s to IPFS as %s", filename, cid)
        return cid
