"""Shared test fixtures for the document verification test suite."""

import io
from pathlib import Path
from unittest.mock import MagicMock

import numpy as np
import pytest
from eth_account import Account
from eth_account.messages import encode_defunct
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy.orm import Session

from docverify.api.app import build_services, create_app
from docverify.core.pipeline import VerificationPipeline
from docverify.db.models import User
from docverify.db.repository import (
    AuthorizationRegistry,
    UserRepository,
    VerificationRecordStore,
)
from docverify.db.session import create_db_engine, create_session_factory, init_db
from docverify.ocr.worker import TextExtractionWorker
from docverify.services.qr import QRIssuer
from docverify.utils.config import AppConfig, DatabaseConfig, QRConfig, ServerConfig

OWNER_KEY = "0x" + "11" * 32
STRANGER_KEY = "0x" + "22" * 32


def _sign(private_key: str, message: str) -> str:
    """personal_sign a message and return the hex signature."""
    signed = Account.sign_message(encode_defunct(text=message), private_key=private_key)
    return signed.signature.to_0x_hex()


def _make_png_bytes(seed: int = 0) -> bytes:
    """Create a small PNG whose bytes differ per seed."""
    image = np.zeros((60, 120, 3), dtype=np.uint8)
    image[10:50, 10 + seed : 110] = 255
    buf = io.BytesIO()
    Image.fromarray(image).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def sign():
    """Fixture exposing the personal_sign helper."""
    return _sign


@pytest.fixture
def owner_key() -> str:
    return OWNER_KEY


@pytest.fixture
def stranger_key() -> str:
    return STRANGER_KEY


@pytest.fixture
def png_bytes():
    """Fixture exposing the PNG factory."""
    return _make_png_bytes


@pytest.fixture
def sample_rgb() -> np.ndarray:
    """Create a simple synthetic RGB test image."""
    image = np.zeros((200, 300, 3), dtype=np.uint8)
    image[50:150, 50:250] = (255, 255, 255)
    return image


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def app_config() -> AppConfig:
    """Configuration with an in-memory database and a fixed public URL."""
    return AppConfig(
        database=DatabaseConfig(url="sqlite://"),
        qr=QRConfig(public_base_url="https://verify.example.com"),
        server=ServerConfig(session_secret="test-secret"),
    )


@pytest.fixture
def db(app_config: AppConfig) -> Session:
    engine = create_db_engine(app_config.database)
    init_db(engine)
    session = create_session_factory(engine)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def owner(db: Session) -> User:
    users = UserRepository(db)
    user = users.create("Ada Owner", "ada@example.com", "hash")
    return users.link_wallet(user, Account.from_key(OWNER_KEY).address)


@pytest.fixture
def registry(db: Session) -> AuthorizationRegistry:
    return AuthorizationRegistry(db)


@pytest.fixture
def records(db: Session) -> VerificationRecordStore:
    return VerificationRecordStore(db)


@pytest.fixture
def extractor() -> MagicMock:
    worker = MagicMock(spec=TextExtractionWorker)
    worker.ready = True
    worker.extract.return_value = "REPUBLIC PASSPORT\nNo. AB123\nSURNAME DOE"
    return worker


@pytest.fixture
def content_store() -> MagicMock:
    store = MagicMock()
    store.pin.return_value = "bafybeigdyrzt5sfp7udm7hu76uh7y26nf3efuylqabf3oclgtqy55fbzdi"
    return store


@pytest.fixture
def ledger() -> MagicMock:
    anchor = MagicMock()
    anchor.anchor.return_value = "0x" + "ab" * 32
    return anchor


@pytest.fixture
def qr_issuer(app_config: AppConfig) -> QRIssuer:
    return QRIssuer(app_config.qr)


@pytest.fixture
def pipeline(
    extractor: MagicMock,
    content_store: MagicMock,
    ledger: MagicMock,
    qr_issuer: QRIssuer,
) -> VerificationPipeline:
    return VerificationPipeline(extractor, content_store, ledger, qr_issuer)


@pytest.fixture
def client(
    app_config: AppConfig,
    extractor: MagicMock,
    content_store: MagicMock,
    ledger: MagicMock,
) -> TestClient:
    """API client over an app whose external capabilities are mocks."""
    services = build_services(
        app_config, worker=extractor, content_store=content_store, ledger=ledger
    )
    with TestClient(create_app(services=services)) as test_client:
        yield test_client


@pytest.fixture
def services(client: TestClient):
    return client.app.state.services
