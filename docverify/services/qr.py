"""QR code issuance for verified documents.

Only the link is persisted. The PNG is rendered from the link whenever it
is needed, so re-verification returns the same code without storing images.
"""

import base64
import io
import uuid
from dataclasses import dataclass

import qrcode

from docverify.utils.config import QRConfig


@dataclass
class QRArtifact:
    """An issued QR code."""

    qr_id: str
    link: str
    data_url: str


class QRIssuer:
    """Builds QR links and renders them as scannable PNGs.

    Args:
        config: QR configuration section.
    """

    def __init__(self, config: QRConfig) -> None:
        self.config = config

    def build_link(self, qr_id: str) -> str:
        return f"{self.config.public_base_url.rstrip('/')}/verify-qr?id={qr_id}"

    def render_png(self, link: str) -> bytes:
        qr = qrcode.QRCode(
            version=1, box_size=self.config.box_size, border=self.config.border
        )
        qr.add_data(link)
        qr.make(fit=True)

        image = qr.make_image(fill_color="black", back_color="white")
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()

    def render_data_url(self, link: str) -> str:
        encoded = base64.b64encode(self.render_png(link)).decode()
        return f"data:image/png;base64,{encoded}"

    def issue(self) -> QRArtifact:
        """Mint a new QR identifier and render its code."""
        qr_id = str(uuid.uuid4())
        link = self.build_link(qr_id)
        return QRArtifact(qr_id=qr_id, link=link, data_url=self.render_data_url(link))
