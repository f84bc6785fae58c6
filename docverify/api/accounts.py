"""Account endpoints: sign-up/in, profile, wallet linking, settings, stats, contact."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash, generate_password_hash

from docverify.core.disclosure import checksum
from docverify.core.errors import InvalidInputError
from docverify.db.models import User, VerificationStatus
from docverify.db.repository import UserRepository, VerificationRecordStore
from docverify.utils.logger import get_logger

from .deps import SESSION_USER_KEY, get_current_user, get_db
from .schemas import (
    ContactMessageResponse,
    ContactRequest,
    LinkWalletRequest,
    LinkWalletResponse,
    MessageResponse,
    ProfileResponse,
    ProfileUpdateRequest,
    SettingsResponse,
    SettingsUpdateRequest,
    SignedInUser,
    SignInRequest,
    SignInResponse,
    SignUpRequest,
    StatsResponse,
)

logger = get_logger(__name__)

router = APIRouter()

CurrentUser = Annotated[User, Depends(get_current_user)]
DB = Annotated[Session, Depends(get_db)]


@router.post(
    "/auth/signup",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Auth"],
)
def signup(payload: SignUpRequest, request: Request, db: DB) -> MessageResponse:
    user = UserRepository(db).create(
        full_name=payload.full_name,
        email=payload.email,
        password_hash=generate_password_hash(payload.password),
        phone=payload.phone,
    )
    request.session[SESSION_USER_KEY] = user.id
    logger.info("Created account %s", user.id)
    return MessageResponse(message="Account created successfully!")


@router.post("/auth/signin", response_model=SignInResponse, tags=["Auth"])
def signin(payload: SignInRequest, request: Request, db: DB) -> SignInResponse:
    user = UserRepository(db).get_by_email(payload.email)
    if user is None or not check_password_hash(user.password_hash, payload.password):
        raise InvalidInputError("Invalid credentials.")

    request.session[SESSION_USER_KEY] = user.id
    return SignInResponse(
        message="Signed in successfully!",
        user=SignedInUser(full_name=user.full_name),
    )


@router.post("/auth/logout", response_model=MessageResponse, tags=["Auth"])
def logout(request: Request) -> MessageResponse:
    request.session.clear()
    return MessageResponse(message="Logged out successfully.")


@router.get("/profile", response_model=ProfileResponse, tags=["Profile"])
def get_profile(user: CurrentUser) -> ProfileResponse:
    return ProfileResponse.model_validate(user)


@router.put("/profile", response_model=MessageResponse, tags=["Profile"])
def update_profile(
    payload: ProfileUpdateRequest, user: CurrentUser, db: DB
) -> MessageResponse:
    UserRepository(db).update_profile(
        user,
        full_name=payload.full_name,
        email=payload.email,
        phone=payload.phone,
    )
    return MessageResponse(message="Profile updated successfully!")


@router.post(
    "/profile/link-wallet", response_model=LinkWalletResponse, tags=["Profile"]
)
def link_wallet(
    payload: LinkWalletRequest, user: CurrentUser, db: DB
) -> LinkWalletResponse:
    """Link a wallet to the account. Each wallet and each account links once."""
    address = checksum(payload.wallet_address)
    UserRepository(db).link_wallet(user, address)
    return LinkWalletResponse(
        message="Wallet linked successfully!", wallet_address=address
    )


@router.get("/settings", response_model=SettingsResponse, tags=["Settings"])
def get_settings(user: CurrentUser, db: DB) -> SettingsResponse:
    return SettingsResponse.model_validate(UserRepository(db).get_settings(user.id))


@router.put("/settings", response_model=MessageResponse, tags=["Settings"])
def update_settings(
    payload: SettingsUpdateRequest, user: CurrentUser, db: DB
) -> MessageResponse:
    UserRepository(db).update_settings(
        user.id,
        email_notifications=payload.email_notifications,
        sms_notifications=payload.sms_notifications,
    )
    return MessageResponse(message="Settings updated successfully!")


@router.get("/stats", response_model=StatsResponse, tags=["Stats"])
def get_stats(user: CurrentUser, db: DB) -> StatsResponse:
    records = VerificationRecordStore(db)
    return StatsResponse(
        total_verified=records.count_for_user(user.id),
        successful_verifications=records.count_for_user(
            user.id, VerificationStatus.VERIFIED
        ),
        pending_requests=records.count_for_user(user.id, VerificationStatus.PENDING),
    )


@router.post(
    "/contact",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Contact"],
)
def send_contact_message(
    payload: ContactRequest, user: CurrentUser, db: DB
) -> MessageResponse:
    UserRepository(db).add_contact_message(user.id, payload.subject, payload.message)
    return MessageResponse(message="Message sent successfully!")


@router.get(
    "/contact", response_model=list[ContactMessageResponse], tags=["Contact"]
)
def list_contact_messages(user: CurrentUser, db: DB) -> list[ContactMessageResponse]:
    return [
        ContactMessageResponse.model_validate(entry)
        for entry in UserRepository(db).list_contact_messages(user.id)
    ]
