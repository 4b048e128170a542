import logging
from typing import Optional

from fastapi import APIRouter, Cookie, Depends, Header, HTTPException, Response, status
from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.core.errors import api_error
from app.core.settings import settings
from app.db.session import get_db
from app.models.user import User
from app.schemas.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    RefreshRequest,
    ResetPasswordRequest,
    SignupRequest,
    TokenPairResponse,
    VerifyOtpRequest,
)
from app.schemas.user import UserOut
from app.security.deps import get_current_user
from app.security.passwords import hash_password, verify_password
from app.services import clerk, otp
from app.services.accounts import sync_social_user
from app.services.notifications import send_password_reset_code
from app.services.sessions import (
    issue_token_pair,
    revoke_all_refresh_tokens,
    revoke_refresh_token,
    rotate_refresh_token,
)


logger = logging.getLogger(__name__)

router = APIRouter()

FORGOT_PASSWORD_MESSAGE = "If an account exists for this email, a reset code has been sent."


def _set_refresh_cookie(response: Response, refresh_token: str) -> None:
    """Mirror the refresh token into an HTTP-only cookie for browser clients."""
    response.set_cookie(
        key=settings.refresh_cookie_name,
        value=refresh_token,
        max_age=settings.refresh_token_expires_days * 24 * 60 * 60,
        httponly=True,
        secure=settings.refresh_cookie_secure,
        samesite=settings.refresh_cookie_samesite,
        path=settings.refresh_cookie_path,
    )


def _token_response(db: Session, user: User, response: Response) -> TokenPairResponse:
    access, refresh = issue_token_pair(db, user)
    db.commit()
    db.refresh(user)
    _set_refresh_cookie(response, refresh)
    return TokenPairResponse(access_token=access, refresh_token=refresh, user=UserOut.model_validate(user))


@router.post("/signup", response_model=TokenPairResponse, status_code=status.HTTP_201_CREATED)
def signup(payload: SignupRequest, response: Response, db: Session = Depends(get_db)) -> TokenPairResponse:
    if db.query(User).filter(User.email == payload.email).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

    user = User(
        name=payload.name,
        email=payload.email,
        phone=payload.phone,
        hashed_password=hash_password(payload.password),
        auth_provider="password",
        last_login=utcnow(),
    )
    db.add(user)
    db.flush()
    logger.info("User %s signed up", user.id)
    return _token_response(db, user, response)


@router.post("/login", response_model=TokenPairResponse)
def login(payload: LoginRequest, response: Response, db: Session = Depends(get_db)) -> TokenPairResponse:
    user: Optional[User] = db.query(User).filter(User.email == payload.email).first()
    if user and user.auth_provider != "password":
        raise api_error(
            status.HTTP_401_UNAUTHORIZED,
            f"This account uses {user.auth_provider} sign-in. Please continue with {user.auth_provider}.",
            "SOCIAL_LOGIN_REQUIRED",
            provider=user.auth_provider,
        )
    if not user or not verify_password(payload.password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")

    user.last_login = utcnow()
    db.add(user)
    logger.info("User %s logged in", user.id)
    return _token_response(db, user, response)


def _refresh_from_request(payload: Optional[RefreshRequest], cookie_token: Optional[str]) -> Optional[str]:
    if payload and payload.refresh_token:
        return payload.refresh_token
    return cookie_token


@router.post("/refresh", response_model=TokenPairResponse)
def refresh_token(
    response: Response,
    payload: Optional[RefreshRequest] = None,
    cookie_token: Optional[str] = Cookie(default=None, alias=settings.refresh_cookie_name),
    db: Session = Depends(get_db),
) -> TokenPairResponse:
    token = _refresh_from_request(payload, cookie_token)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing refresh token")

    user, access, new_refresh = rotate_refresh_token(db, token)
    _set_refresh_cookie(response, new_refresh)
    return TokenPairResponse(access_token=access, refresh_token=new_refresh, user=UserOut.model_validate(user))


@router.post("/logout", response_model=MessageResponse)
def logout(
    response: Response,
    payload: Optional[RefreshRequest] = None,
    cookie_token: Optional[str] = Cookie(default=None, alias=settings.refresh_cookie_name),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MessageResponse:
    token = _refresh_from_request(payload, cookie_token)
    if not token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Refresh token is required")
    revoke_refresh_token(db, user.id, token)
    response.delete_cookie(key=settings.refresh_cookie_name, path=settings.refresh_cookie_path)
    return MessageResponse(message="Logged out")


@router.post("/logout-all", response_model=MessageResponse)
def logout_all(
    response: Response, user: User = Depends(get_current_user), db: Session = Depends(get_db)
) -> MessageResponse:
    count = revoke_all_refresh_tokens(db, user.id)
    response.delete_cookie(key=settings.refresh_cookie_name, path=settings.refresh_cookie_path)
    return MessageResponse(message=f"Logged out from {count} session(s)")


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)) -> User:
    return user


@router.post("/clerk", response_model=TokenPairResponse)
def clerk_login(
    response: Response,
    authorization: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> TokenPairResponse:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise api_error(status.HTTP_400_BAD_REQUEST, "Missing Clerk session token", "MISSING_TOKEN")
    token = authorization.split(" ", 1)[1].strip()

    try:
        profile = clerk.resolve_profile(token)
    except clerk.ClerkError as exc:
        logger.warning("Clerk sign-in rejected: %s", exc)
        raise api_error(status.HTTP_401_UNAUTHORIZED, str(exc), "AUTH_PROVIDER_ERROR")

    user = sync_social_user(db, profile)
    return _token_response(db, user, response)


def _otp_unavailable() -> HTTPException:
    return api_error(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "Password reset is temporarily unavailable. Please try again later.",
        "OTP_UNAVAILABLE",
    )


def _otp_failure(exc: otp.OTPError) -> HTTPException:
    code = status.HTTP_429_TOO_MANY_REQUESTS if exc.code == "OTP_ATTEMPTS_EXCEEDED" else status.HTTP_400_BAD_REQUEST
    return api_error(code, exc.message, exc.code)


def _password_user(db: Session, email: str) -> Optional[User]:
    return (
        db.query(User)
        .filter(User.email == email.lower(), User.auth_provider == "password")
        .first()
    )


@router.post("/forgot", response_model=MessageResponse)
def forgot_password(payload: ForgotPasswordRequest, db: Session = Depends(get_db)) -> MessageResponse:
    user = _password_user(db, payload.email)
    if user:
        try:
            code = otp.issue_otp(user.id)
        except otp.OTPStoreUnavailable:
            logger.error("OTP store unreachable while issuing a reset code")
            raise _otp_unavailable()
        result = send_password_reset_code(user, code)
        if not result.success:
            logger.error("Could not deliver reset code to user %s: %s", user.id, result.error)
    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.post("/verify-otp", response_model=MessageResponse)
def verify_otp(payload: VerifyOtpRequest, db: Session = Depends(get_db)) -> MessageResponse:
    user = _password_user(db, payload.email)
    if not user:
        raise api_error(status.HTTP_400_BAD_REQUEST, "Invalid OTP", "OTP_INVALID")
    try:
        otp.check_otp(user.id, payload.otp)
    except otp.OTPStoreUnavailable:
        raise _otp_unavailable()
    except otp.OTPError as exc:
        raise _otp_failure(exc)
    return MessageResponse(message="OTP verified")


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(payload: ResetPasswordRequest, db: Session = Depends(get_db)) -> MessageResponse:
    user = _password_user(db, payload.email)
    if not user:
        raise api_error(status.HTTP_400_BAD_REQUEST, "Invalid OTP", "OTP_INVALID")
    try:
        otp.consume_otp(user.id, payload.otp)
    except otp.OTPStoreUnavailable:
        raise _otp_unavailable()
    except otp.OTPError as exc:
        raise _otp_failure(exc)

    user.hashed_password = hash_password(payload.new_password)
    db.add(user)
    db.commit()
    revoke_all_refresh_tokens(db, user.id)
    logger.info("Password reset for user %s", user.id)
    return MessageResponse(message="Password has been reset")
