"""Auth API — registration, login, and the password reset flow.

Learn: Routes for account lifecycle:
- POST /auth/register → create an account (multipart, optional profile picture)
- POST /auth/login → email/password → session token
- POST /auth/forgetPassword → email a reset code, return a CODE_ISSUED token
- POST /auth/submitCode → (token) code → CODE_VERIFIED token
- PUT /auth/resetPassword → (token) set a new password
- GET /auth/me → (token) current user info

The three "(token)" routes run behind get_authorization_context.
Handlers only translate HTTP ↔ service calls; errors raised by the
services are turned into envelopes by api/errors.py.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import EmailStr

from passgate.auth.dependencies import AuthorizationContext, get_authorization_context
from passgate.auth.jwt import TokenService, get_token_service
from passgate.auth.nonces import NonceRegistry, get_nonce_registry
from passgate.auth.password import CredentialHasher, get_credential_hasher
from passgate.config import settings
from passgate.db.user_store import UserStore, get_user_store
from passgate.errors import UserNotFoundError
from passgate.notifications.email import NotificationGateway, get_notification_gateway
from passgate.schemas.auth import (
    Envelope,
    ForgetPasswordRequest,
    LoginRequest,
    ResetPasswordRequest,
    SubmitCodeRequest,
    UserRead,
    ok,
)
from passgate.services.account_service import AccountService
from passgate.services.reset_service import PasswordResetService
from passgate.uploads import ProfileImageStorage, get_profile_storage

router = APIRouter(prefix="/auth")


def _get_account_service(
    users: UserStore = Depends(get_user_store),
    hasher: CredentialHasher = Depends(get_credential_hasher),
    tokens: TokenService = Depends(get_token_service),
) -> AccountService:
    return AccountService(users, hasher, tokens)


def _get_reset_service(
    users: UserStore = Depends(get_user_store),
    hasher: CredentialHasher = Depends(get_credential_hasher),
    tokens: TokenService = Depends(get_token_service),
    notifier: NotificationGateway = Depends(get_notification_gateway),
    nonces: Optional[NonceRegistry] = Depends(get_nonce_registry),
) -> PasswordResetService:
    return PasswordResetService(
        users,
        hasher,
        tokens,
        notifier,
        nonces=nonces,
        code_digits=settings.reset_code_digits,
    )


# ─── Register ────────────────────────────────────────────


@router.post("/register", response_model=Envelope, status_code=201)
async def register(
    name: str = Form(..., min_length=1, max_length=100),
    surname: str = Form(..., min_length=1, max_length=100),
    email: EmailStr = Form(...),
    password: str = Form(..., min_length=8, max_length=16),
    telephone: str = Form(...),
    profile_picture: Optional[UploadFile] = File(None),
    svc: AccountService = Depends(_get_account_service),
    storage: ProfileImageStorage = Depends(get_profile_storage),
):
    """Create a new account. Does not log the user in."""
    image_ref = None
    if profile_picture is not None and profile_picture.filename:
        image_ref = await storage.save(profile_picture)

    try:
        await svc.register(
            name=name,
            surname=surname,
            email=email,
            password=password,
            telephone=telephone,
            profile_image_ref=image_ref,
        )
    except Exception:
        # Don't leave orphaned uploads behind
        if image_ref:
            await storage.delete(image_ref)
        raise

    return ok({"message": "User registered successfully"}, status=201)


# ─── Login ───────────────────────────────────────────────


@router.post("/login", response_model=Envelope)
async def login(
    body: LoginRequest,
    svc: AccountService = Depends(_get_account_service),
):
    """Login with email and password → session token."""
    token = await svc.login(body.email, body.password)
    return ok({"token": token})


# ─── Password reset ──────────────────────────────────────


@router.post("/forgetPassword", response_model=Envelope)
async def forget_password(
    body: ForgetPasswordRequest,
    svc: PasswordResetService = Depends(_get_reset_service),
):
    """Email a reset code and return the token that carries its hash."""
    token = await svc.request_reset(body.email)
    return ok({"token": token})


@router.post("/submitCode", response_model=Envelope)
async def submit_code(
    body: SubmitCodeRequest,
    context: AuthorizationContext = Depends(get_authorization_context),
    svc: PasswordResetService = Depends(_get_reset_service),
):
    """Trade the emailed code (plus the forgetPassword token) for a reset token."""
    token = await svc.submit_code(context, body.code)
    return ok({"token": token})


@router.put("/resetPassword", response_model=Envelope)
async def reset_password(
    body: ResetPasswordRequest,
    context: AuthorizationContext = Depends(get_authorization_context),
    svc: PasswordResetService = Depends(_get_reset_service),
):
    """Set a new password using the token returned by submitCode."""
    await svc.reset_password(context, body.password)
    return ok({"message": "Request has ended successfully"})


# ─── Current user ───────────────────────────────────────


@router.get("/me", response_model=Envelope)
async def get_me(
    context: AuthorizationContext = Depends(get_authorization_context),
    users: UserStore = Depends(get_user_store),
):
    """Get the current authenticated user's info."""
    identity = await users.find_by_uid(context.uid)
    if identity is None:
        raise UserNotFoundError()

    user = UserRead(
        uid=identity.uid,
        email=identity.email,
        name=identity.name,
        surname=identity.surname,
        telephone=identity.telephone,
        profile_picture=identity.profile_image_ref,
    )
    return ok({"user": user.model_dump()})
