"""FastAPI authentication dependencies.

``require_auth`` turns a bearer token into an ``Actor``. It rejects missing,
forged and expired tokens, and tokens whose account no longer exists or has
been deactivated. There is no anonymous mode: every route that reads or
writes data depends on it.

Authorization is not decided here. Handlers pass the ``Actor`` to the
services, which ask the resolver.
"""

import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .access import Actor
from .config import settings
from .token_factory import read_token
from ..database import get_db
from ..exceptions import AuthenticationError

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


def require_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    db: Session = Depends(get_db),
) -> Actor:
    """Authenticate the request and return the calling actor."""
    if credentials is None:
        raise AuthenticationError("Missing authentication token")

    claims = read_token(credentials.credentials, settings.jwt_secret_key, settings.jwt_algorithm)
    if claims is None:
        raise AuthenticationError("Invalid or expired token")

    return load_actor(db, claims.sub)


def load_actor(db: Session, user_id: str) -> Actor:
    """Build an ``Actor`` from the current profile row."""
    from ..models.user import Profile

    profile = db.query(Profile).filter(Profile.user_id == user_id).first()
    if profile is None:
        raise AuthenticationError("User not found")
    if not profile.is_active:
        logger.info("Rejected token for deactivated account", extra={"actor_id": user_id})
        raise AuthenticationError("Account is deactivated")

    return Actor(user_id=profile.user_id, role=profile.role, is_active=profile.is_active)


def optional_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    db: Session = Depends(get_db),
) -> Optional[Actor]:
    """Like ``require_auth`` but returns None when no token is sent.

    A token that is sent but invalid is still rejected.
    """
    if credentials is None:
        return None
    return require_auth(credentials, db)
