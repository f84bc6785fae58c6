"""Configuration management for the document verification service.

Loads and validates YAML configuration with defaults for OCR, storage,
the blockchain ledger, QR issuance and the HTTP server. Secrets can be
supplied through environment variables instead of the YAML file.
"""

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("configs/config.yaml")
DEFAULT_SESSION_SECRET = "change-me"

# env var -> (section, field)
_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "DOCVERIFY_SESSION_SECRET": ("server", "session_secret"),
    "DOCVERIFY_DATABASE_URL": ("database", "url"),
    "DOCVERIFY_PINATA_JWT": ("content_store", "jwt"),
    "DOCVERIFY_RPC_URL": ("ledger", "rpc_url"),
    "DOCVERIFY_ACCOUNT_ADDRESS": ("ledger", "account_address"),
    "DOCVERIFY_PRIVATE_KEY": ("ledger", "private_key"),
    "DOCVERIFY_PUBLIC_BASE_URL": ("qr", "public_base_url"),
}


class OCRConfig(BaseModel):
    """Configuration for the Tesseract text extractor."""

    tesseract_cmd: str | None = None
    default_lang: str = "eng"
    psm: int = 3
    pdf_dpi: int = 300
    timeout_s: float = 60.0
    denoise_enabled: bool = True
    binarize_enabled: bool = False


class DatabaseConfig(BaseModel):
    """Configuration for the SQLAlchemy engine."""

    url: str = "sqlite:///./docverify.db"
    echo: bool = False


class ContentStoreConfig(BaseModel):
    """Configuration for the Pinata IPFS pinning client."""

    api_url: str = "https://api.pinata.cloud/pinning/pinFileToIPFS"
    gateway_url: str = "https://gateway.pinata.cloud/ipfs"
    jwt: str | None = None
    timeout_s: float = 30.0


class LedgerConfig(BaseModel):
    """Configuration for anchoring file hashes on an EVM chain."""

    rpc_url: str = "http://127.0.0.1:7545"
    account_address: str | None = None
    private_key: str | None = None
    chain_id: int | None = None
    gas_limit: int = 50000
    request_timeout_s: float = 30.0
    receipt_timeout_s: float = 180.0


class QRConfig(BaseModel):
    """Configuration for QR code issuance."""

    public_base_url: str = "http://localhost:8000"
    box_size: int = 10
    border: int = 4


class ServerConfig(BaseModel):
    """Configuration for the HTTP server and session cookies."""

    host: str = "0.0.0.0"
    port: int = 8000
    session_secret: str = DEFAULT_SESSION_SECRET
    session_max_age_s: int = 3600
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])


class AppConfig(BaseModel):
    """Top-level application configuration."""

    ocr: OCRConfig = Field(default_factory=OCRConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    content_store: ContentStoreConfig = Field(default_factory=ContentStoreConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    qr: QRConfig = Field(default_factory=QRConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    log_level: str = "INFO"


def _apply_env_overrides(raw: dict) -> dict:
    """Overlay secrets and endpoints taken from the environment.

    Args:
        raw: Configuration mapping as read from YAML.

    Returns:
        The same mapping with any environment values merged in.
    """
    for env_var, (section, key) in _ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            raw.setdefault(section, {})[key] = value
            logger.debug("Using %s for %s.%s", env_var, section, key)
    return raw


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path(os.environ.get("DOCVERIFY_CONFIG", DEFAULT_CONFIG_PATH))

    raw: dict = {}
    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    else:
        logger.info("No config file found at %s, using defaults", path)

    return AppConfig(**_apply_env_overrides(raw))
