from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
from datetime import timedelta
from typing import Optional
import logging

from scoreboard.database import get_db
from scoreboard.config import get_settings
from scoreboard.services.auth import AuthService
from scoreboard.services.activity import log_login_failed, log_user_login, log_user_registration
from scoreboard.services.rate_limit import SlidingWindowLimiter
from scoreboard.schemas.user import User, UserRegister, Token
from scoreboard.models.user import User as UserModel

router = APIRouter(prefix="/api/auth", tags=["Authentication"])
settings = get_settings()
logger = logging.getLogger(__name__)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)
login_limiter = SlidingWindowLimiter(
    settings.login_rate_limit_attempts,
    settings.login_rate_limit_window_seconds,
)


def _session_token(request: Request, bearer: Optional[str]) -> Optional[str]:
    return bearer or request.cookies.get(settings.session_cookie_name)


async def get_current_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> UserModel:
    token = _session_token(request, token)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    token_data = AuthService.decode_token(token)
    if not token_data:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user = AuthService.get_user_by_id(db, token_data.user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_admin(current_user: UserModel = Depends(get_current_user)) -> UserModel:
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator access required",
        )
    return current_user


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


@router.post("/register", response_model=User, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserRegister, db: Session = Depends(get_db)):
    """Register a new user."""
    if not settings.enable_registration:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Public registration is disabled in this deployment",
        )
    AuthService.require_strong_password(user_data.password)

    user = AuthService.create_user(db, user_data.email, user_data.password, name=user_data.name)
    log_user_registration(db, user, commit=False)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s", user.id)
    return user


@router.post("/login", response_model=Token)
async def login(
    request: Request,
    response: Response,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    """Sign in with email and password; the session token is also set as a cookie."""
    email = AuthService.normalize_email(form_data.username)
    ip_address = client_ip(request)
    limiter_key = f"{ip_address}:{email}"

    retry_after = login_limiter.retry_after(limiter_key)
    if retry_after:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Too many sign-in attempts. Try again in {retry_after} seconds.",
            headers={"Retry-After": str(retry_after)},
        )

    user, reason = AuthService.authenticate_user(db, email, form_data.password)
    if not user:
        login_limiter.hit(limiter_key)
        log_login_failed(db, email, reason, ip_address)
        logger.warning("Failed sign in for %s (%s)", email, reason)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    login_limiter.reset(limiter_key)
    log_user_login(db, user)

    access_token_expires = timedelta(minutes=settings.access_token_expire_minutes)
    access_token = AuthService.create_access_token(
        data={"sub": user.id}, expires_delta=access_token_expires
    )
    expires_in = int(access_token_expires.total_seconds())
    response.set_cookie(
        key=settings.session_cookie_name,
        value=access_token,
        max_age=expires_in,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )
    return Token(
        access_token=access_token,
        token_type="bearer",
        expires_in=expires_in,
        user=User.model_validate(user),
    )


@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie(settings.session_cookie_name)
    return {"message": "Signed out"}


@router.get("/me", response_model=User)
async def get_me(current_user: UserModel = Depends(get_current_user)):
    """Get current user info."""
    return current_user
