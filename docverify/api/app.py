"""FastAPI application for the document verification service.

Builds the shared services (database, OCR worker, IPFS and ledger clients,
verification pipeline, disclosure gate), wires the routers and maps service
errors to JSON ``{"message": ...}`` responses.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from docverify import __version__
from docverify.core.disclosure import DisclosureGate
from docverify.core.errors import DocVerifyError, InternalError
from docverify.core.pipeline import (
    ContentStore,
    DocumentLocks,
    LedgerAnchor,
    VerificationPipeline,
)
from docverify.db.session import create_db_engine, create_session_factory, init_db
from docverify.ocr.worker import TextExtractionWorker
from docverify.services.content_store import PinataStore
from docverify.services.ledger import Web3LedgerAnchor
from docverify.services.qr import QRIssuer
from docverify.utils.config import DEFAULT_SESSION_SECRET, AppConfig, load_config
from docverify.utils.logger import get_logger

from . import accounts, verification
from .deps import Services
from .schemas import HealthResponse

logger = get_logger(__name__)


def build_services(
    config: AppConfig,
    worker: TextExtractionWorker | None = None,
    content_store: ContentStore | None = None,
    ledger: LedgerAnchor | None = None,
) -> Services:
    """Create the process-wide collaborators from configuration.

    Any capability can be passed in to replace the configured client.
    """
    engine = create_db_engine(config.database)
    worker = worker or TextExtractionWorker(config.ocr)
    qr_issuer = QRIssuer(config.qr)
    pipeline = VerificationPipeline(
        extractor=worker,
        content_store=content_store or PinataStore(config.content_store),
        ledger=ledger or Web3LedgerAnchor(config.ledger),
        qr_issuer=qr_issuer,
        locks=DocumentLocks(),
    )
    return Services(
        config=config,
        engine=engine,
        session_factory=create_session_factory(engine),
        worker=worker,
        pipeline=pipeline,
        gate=DisclosureGate(),
        qr_issuer=qr_issuer,
    )


def _warn_insecure_defaults(config: AppConfig) -> None:
    """Log a warning for every secret that is missing or left at its default."""
    if config.server.session_secret == DEFAULT_SESSION_SECRET:
        logger.warning(
            "Session secret is the built-in default; session cookies can be "
            "forged. Set DOCVERIFY_SESSION_SECRET."
        )
    if not config.ledger.private_key:
        logger.warning("Ledger private key not set; verifications cannot be anchored")
    if not config.content_store.jwt:
        logger.warning("Pinata JWT not set; documents cannot be pinned to IPFS")


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DocVerifyError)
    async def handle_service_error(request: Request, exc: DocVerifyError) -> JSONResponse:
        message = exc.message
        if isinstance(exc, InternalError):
            logger.error(
                "%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc
            )
            message = InternalError.default_message
        return JSONResponse(status_code=exc.status_code, content={"message": message})

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500, content={"message": InternalError.default_message}
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        fields = ", ".join(
            ".".join(str(p) for p in err["loc"][1:]) or str(err["loc"][0])
            for err in exc.errors()
        )
        return JSONResponse(
            status_code=400,
            content={"message": f"Invalid or missing fields: {fields}"},
        )


def create_app(
    config: AppConfig | None = None,
    services: Services | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Application configuration. Loaded from YAML if omitted.
        services: Prebuilt services, used by tests to inject doubles.
    """
    config = config or (services.config if services else load_config())
    services = services or build_services(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        _warn_insecure_defaults(config)
        init_db(services.engine)
        services.worker.start_background()
        yield
        services.worker.shutdown()
        services.engine.dispose()

    app = FastAPI(
        title="Document Verification API",
        description="OCR-checked document verification anchored on a blockchain",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        SessionMiddleware,
        secret_key=config.server.session_secret,
        max_age=config.server.session_max_age_s,
        same_site="lax",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_error_handlers(app)
    app.include_router(accounts.router)
    app.include_router(verification.router)

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Return service health and OCR readiness."""
        return HealthResponse(
            status="healthy", version=__version__, ocr_ready=services.worker.ready
        )

    return app
