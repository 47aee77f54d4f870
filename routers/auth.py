from fastapi import APIRouter, Depends, HTTPException, status

from core.auth import create_access_token, get_current_principal
from core.config import settings
from core.logging_config import get_logger, log_review_event
from core.rate_limit import api_rate_limiter
from schemas.auth import LoginRequest, PrincipalData, TokenData, TokenResponse, VerifyResponse

auth_logger = get_logger("routers.auth")

router = APIRouter()


@router.post("/login", response_model=TokenResponse, dependencies=[Depends(api_rate_limiter)])
def login(payload: LoginRequest):
    """Issue a demo token for a user id; real deployments get tokens from their identity provider"""
    if settings.is_production:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Not Found",
        )

    auth_logger.info(f"Demo login for user: {payload.user_id}")
    token = create_access_token({"sub": payload.user_id, "role": payload.role.value})
    log_review_event("login", user_id=payload.user_id)

    return TokenResponse(
        success=True,
        message="Login successful",
        data=TokenData(
            token=token,
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            user_id=payload.user_id,
        ),
    )


@router.get("/verify", response_model=VerifyResponse, dependencies=[Depends(api_rate_limiter)])
def verify_token(user=Depends(get_current_principal)):
    return VerifyResponse(
        success=True,
        message="Token is valid",
        data=PrincipalData(user_id=user["id"], role=user["role"]),
    )
