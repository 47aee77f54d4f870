from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt

from core.config import settings

bearer_scheme = HTTPBearer(auto_error=False)


# ---------------- TOKEN CREATION ---------------- #


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


# ---------------- TOKEN DECODING ---------------- #
def decode_token(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        )


def principal_from_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )
    return {"id": user_id, "role": payload.get("role", "customer")}


# ---------------- USER DEPENDENCIES ---------------- #


def get_optional_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[Dict[str, Any]]:
    """Principal for a bearer token, None without one; a bad token still fails"""
    if credentials is None:
        return None
    return principal_from_payload(decode_token(credentials.credentials))


def get_current_principal(
    principal: Optional[Dict[str, Any]] = Depends(get_optional_principal),
) -> Dict[str, Any]:
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No authorization header provided",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal


def submitter_identity(request: Request, principal: Optional[Dict[str, Any]]) -> str:
    """Authenticated principal id, or an anonymous id derived from the client address"""
    if principal is not None:
        return principal["id"]
    client_host = request.client.host if request.client else "unknown"
    return f"anonymous-{client_host}"


# ---------------- ROLE CHECK ---------------- #
def role_required(required_roles: list):
    def wrapper(user=Depends(get_current_principal)):
        if user["role"] not in required_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not enough permissions",
            )
        return user
    return wrapper
