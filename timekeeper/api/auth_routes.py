"""Authentication and account endpoints.

    POST /api/auth/register  -- create account (open for the first account, admin-provisioned after)
    POST /api/auth/login     -- authenticate and receive a JWT
    GET  /api/auth/me        -- the caller's own profile
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.access import Actor
from ..core.auth import optional_actor, require_auth
from ..core.config import settings
from ..core.token_factory import issue_token
from ..database import get_db
from ..schemas.user import LoginRequest, LoginResponse, RegisterRequest, UserResponse
from ..services import identity_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=201,
    summary="Register a new account",
    description="The first registration is open and creates an admin. After that an admin token is required.",
)
def register(
    body: RegisterRequest,
    db: Session = Depends(get_db),
    actor: Optional[Actor] = Depends(optional_actor),
):
    return identity_service.register_user(
        db, body.email, body.password, body.full_name, role=body.role, actor=actor
    )


@router.post("/login", response_model=LoginResponse, summary="Authenticate and receive JWT")
def login(body: LoginRequest, db: Session = Depends(get_db)):
    profile = identity_service.authenticate(db, body.email, body.password)
    token = issue_token(
        profile.user_id,
        profile.role,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expires_hours=settings.token_expiry_hours,
    )
    logger.info("Login succeeded", extra={"actor_id": profile.user_id})
    return LoginResponse(token=token, user=UserResponse.model_validate(profile))


@router.get("/me", response_model=UserResponse, summary="Current account")
def me(actor: Actor = Depends(require_auth), db: Session = Depends(get_db)):
    return identity_service.get_user(db, actor, actor.user_id)
