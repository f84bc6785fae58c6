"""FastAPI dependencies: shared services, DB sessions and the current user."""

from collections.abc import Iterator
from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from docverify.core.disclosure import DisclosureGate
from docverify.core.errors import UnauthorizedError
from docverify.core.pipeline import VerificationPipeline
from docverify.db.models import User
from docverify.db.repository import UserRepository
from docverify.ocr.worker import TextExtractionWorker
from docverify.services.qr import QRIssuer
from docverify.utils.config import AppConfig

SESSION_USER_KEY = "user_id"


@dataclass
class Services:
    """Process-wide collaborators stored on ``app.state.services``."""

    config: AppConfig
    engine: Engine
    session_factory: sessionmaker
    worker: TextExtractionWorker
    pipeline: VerificationPipeline
    gate: DisclosureGate
    qr_issuer: QRIssuer


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_db(services: Services = Depends(get_services)) -> Iterator[Session]:
    """Provide a DB session for the duration of one request."""
    db = services.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """Resolve the signed-in user from the session cookie.

    Raises:
        UnauthorizedError: If nobody is signed in or the account is gone.
    """
    user_id = request.session.get(SESSION_USER_KEY)
    if user_id is None:
        raise UnauthorizedError()
    user = UserRepository(db).get(user_id)
    if user is None:
        request.session.clear()
        raise UnauthorizedError()
    return user
