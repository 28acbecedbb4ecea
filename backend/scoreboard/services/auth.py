from datetime import datetime, timedelta
from typing import Optional
import logging
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session
from fastapi import HTTPException, status

from scoreboard.config import get_settings
from scoreboard.models.enums import UserRole
from scoreboard.models.user import User
from scoreboard.schemas.user import TokenData
from scoreboard.services.passwords import password_policy_errors

settings = get_settings()
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
logger = logging.getLogger(__name__)


class AuthService:
    @staticmethod
    def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
        if not plain_password or not hashed_password:
            return False
        try:
            return pwd_context.verify(plain_password, hashed_password)
        except ValueError:
            logger.warning("Stored password hash could not be parsed")
            return False

    @staticmethod
    def get_password_hash(password: str) -> str:
        return pwd_context.hash(password)

    @staticmethod
    def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
        to_encode = data.copy()
        if expires_delta:
            expire = datetime.utcnow() + expires_delta
        else:
            expire = datetime.utcnow() + timedelta(minutes=settings.access_token_expire_minutes)
        to_encode.update({"exp": expire})
        encoded_jwt = jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)
        return encoded_jwt

    @staticmethod
    def decode_token(token: str) -> Optional[TokenData]:
        try:
            payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
            user_id: str = payload.get("sub")
            if user_id is None:
                return None
            return TokenData(user_id=user_id)
        except JWTError:
            return None

    @staticmethod
    def require_strong_password(password: str) -> None:
        errors = password_policy_errors(password)
        if errors:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"message": "Password does not meet requirements", "errors": errors},
            )

    @staticmethod
    def normalize_email(email: str) -> str:
        return email.strip().lower()

    @staticmethod
    def authenticate_user(db: Session, email: str, password: str) -> tuple[Optional[User], Optional[str]]:
        """Return ``(user, None)`` on success or ``(None, reason)`` on failure."""
        user = AuthService.get_user_by_email(db, email)
        if not user:
            return None, "user_not_found"
        if not user.hashed_password:
            return None, "no_password_set"
        if not AuthService.verify_password(password, user.hashed_password):
            return None, "invalid_password"
        return user, None

    @staticmethod
    def create_user(
        db: Session,
        email: str,
        password: Optional[str],
        name: Optional[str] = None,
        role: UserRole = UserRole.USER,
    ) -> User:
        """Stage a new user on the session; the caller commits with its audit row."""
        email = AuthService.normalize_email(email)
        if AuthService.get_user_by_email(db, email):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already registered",
            )

        db_user = User(
            email=email,
            name=name.strip() if name else None,
            hashed_password=AuthService.get_password_hash(password) if password else None,
            role=role,
        )
        db.add(db_user)
        db.flush()
        return db_user

    @staticmethod
    def get_user_by_id(db: Session, user_id: str) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == AuthService.normalize_email(email)).first()

    @staticmethod
    def count_admins(db: Session) -> int:
        return db.query(User).filter(User.role == UserRole.ADMIN).count()

    @staticmethod
    def ensure_admin_remains(db: Session, user: User, action: str) -> None:
        """Refuse to remove ``user`` from the ADMIN role when no other admin exists."""
        if user.role == UserRole.ADMIN and AuthService.count_admins(db) <= 1:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot {action} the last administrator",
            )
