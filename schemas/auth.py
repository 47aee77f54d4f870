from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class UserRole(str, Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"


class LoginRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: str = Field(..., min_length=1, max_length=100)
    role: UserRole = UserRole.CUSTOMER


class TokenData(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    token: str
    token_type: str = "bearer"
    expires_in: int
    user_id: str


class TokenResponse(BaseModel):
    success: bool
    message: str
    data: TokenData


class PrincipalData(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: str
    role: str
    is_authenticated: bool = True


class VerifyResponse(BaseModel):
    success: bool
    message: str
    data: PrincipalData
