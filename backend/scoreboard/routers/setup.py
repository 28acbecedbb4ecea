from typing import Optional

from pydantic import BaseModel, Field
from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from scoreboard.config import get_settings
from scoreboard.database import get_db
from scoreboard.models.enums import UserRole
from scoreboard.models.user import User as UserModel
from scoreboard.schemas.user import NormalizedEmail, User
from scoreboard.services.activity import log_admin_user_created
from scoreboard.services.auth import AuthService

router = APIRouter(prefix="/api/setup", tags=["Setup"])
settings = get_settings()


class SetupStatusResponse(BaseModel):
    setup_required: bool
    user_count: int
    admin_count: int
    enable_registration: bool


class SetupBootstrapRequest(BaseModel):
    email: NormalizedEmail
    password: str = Field(..., max_length=100)
    name: Optional[str] = Field(default=None, max_length=100)
    setup_token: Optional[str] = None


@router.get("/status", response_model=SetupStatusResponse)
async def setup_status(db: Session = Depends(get_db)):
    admin_count = AuthService.count_admins(db)
    return SetupStatusResponse(
        setup_required=admin_count == 0,
        user_count=db.query(UserModel).count(),
        admin_count=admin_count,
        enable_registration=settings.enable_registration,
    )


@router.post("/bootstrap", response_model=User, status_code=status.HTTP_201_CREATED)
async def bootstrap_admin(
    payload: SetupBootstrapRequest,
    db: Session = Depends(get_db),
    x_setup_token: Optional[str] = Header(default=None, alias="X-Setup-Token"),
):
    """Create the first administrator of a fresh deployment."""
    if AuthService.count_admins(db) > 0:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Setup already completed. An administrator already exists.",
        )

    required_token = settings.setup_bootstrap_token
    if required_token:
        provided = payload.setup_token or x_setup_token
        if provided != required_token:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid setup token",
            )

    AuthService.require_strong_password(payload.password)
    created = AuthService.create_user(
        db,
        payload.email,
        payload.password,
        name=payload.name or "System Administrator",
        role=UserRole.ADMIN,
    )
    log_admin_user_created(db, created, created_by="system", commit=False)
    db.commit()
    db.refresh(created)
    return created
