"""Bearer-token authentication for the Ordering API.

Tokens are HS256 JWTs issued by the identity service. The ordering routes
only need the subject and the role claim.
"""

import os
from dataclasses import dataclass

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

ADMIN = "admin"
MODERATOR = "moderator"
STAFF_ROLES = (ADMIN, MODERATOR)

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Actor:
    user_id: str
    role: str

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


def _jwt_settings() -> tuple[str, str]:
    return os.environ.get("JWT_SECRET", "devsecret"), os.environ.get("JWT_ALGORITHM", "HS256")


def get_current_actor(creds: HTTPAuthorizationCredentials | None = Depends(security)) -> Actor:
    if not creds:
        raise HTTPException(status_code=401, detail="Not authenticated")
    secret, algorithm = _jwt_settings()
    try:
        payload = jwt.decode(creds.credentials, secret, algorithms=[algorithm])
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid token")
    if payload.get("type") != "access" or not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid access token")
    return Actor(user_id=str(payload["sub"]), role=payload.get("role", "user"))


def require_roles(*roles: str):
    """Dependency factory that admits only the given roles."""

    def _check(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in roles:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return actor

    return _check


require_admin = require_roles(ADMIN)
require_staff = require_roles(*STAFF_ROLES)
