import logging

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel

from .config import JWT_ALGORITHM, SECRET_KEY

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


class UserRole:
    DOCTOR = "doctor"
    PATIENT = "patient"
    ADMIN = "admin"


class CurrentUser(BaseModel):
    """Verified caller identity issued by the identity service"""

    id: str
    role: str
    email: str | None = None


def decode_access_token(token: str) -> dict:
    """
    Verify an access token issued by the identity service.
    Signature, algorithm and expiry are checked by python-jose.
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except ExpiredSignatureError as e:
        logger.info("ℹ️ Expired access token presented")
        raise HTTPException(
            status_code=401,
            detail="Token has expired. Please refresh your session.",
            headers={"X-Token-Expired": "true"},
        ) from e
    except JWTError as e:
        logger.warning(f"⚠️ Token verification failed: {str(e)}")
        raise HTTPException(status_code=401, detail="Token verification failed") from e

    logger.debug(f"✅ Token verified for user: {payload.get('sub')}")
    return payload


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> CurrentUser:
    """Get the caller identity from the bearer token"""
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    payload = decode_access_token(credentials.credentials)

    user_id = payload.get("sub") or payload.get("user_id") or payload.get("id")
    role = payload.get("role")
    if not user_id or not role:
        logger.error(f"❌ Token missing identity claims. Available claims: {list(payload.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")

    return CurrentUser(id=str(user_id), role=str(role), email=payload.get("email"))


def require_role(*roles: str):
    """Dependency factory restricting an endpoint to the given roles"""

    async def verify_role(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in roles:
            logger.warning(f"⚠️ User {user.id} with role '{user.role}' denied; requires {roles}")
            raise HTTPException(status_code=403, detail="Not authorized to access this resource")
        return user

    return verify_role
