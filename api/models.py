"""
API request and response models for Gatehouse REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Request fields are Optional on purpose: AuthService reports missing inputs
as one aggregated, field-keyed error, which a Pydantic "field required" 422
would pre-empt. Passwords carry no length cap here either: the bound is
PASSWORD_MAX_LENGTH, enforced by PasswordHasher and reported as a field error.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import UserProfile

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class SignupRequest(BaseModel):
    """Request body for POST /api/v1/auth/signup.

    The confirmation field is sent as "cPassword" on the wire; confirm_password
    is accepted too.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = None
    confirm_password: Optional[str] = Field(default=None, alias="cPassword")


class SigninRequest(BaseModel):
    """Request body for POST /api/v1/auth/signin."""

    email: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """One user profile. Never includes the password digest."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: str
    role: str
    created_at: str

    @classmethod
    def from_profile(cls, profile: UserProfile) -> "UserResponse":
        return cls(
            id=profile.id,
            name=profile.name,
            email=profile.email,
            role=profile.role.value,
            created_at=profile.created_at or "",
        )


class UserListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    users: list[UserResponse]


class SigninUser(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    role: str


class SigninResponse(BaseModel):
    """Response for a successful sign-in."""

    model_config = ConfigDict(frozen=True)

    token: str
    token_type: str = "bearer"
    expires_in: int
    user: SigninUser


class RoleResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: str


class MeResponse(BaseModel):
    """Identity carried by the presented token (role as of issuance)."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    role: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload.

    fields is present only for validation errors and maps each input name to
    its message.
    """

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None
    fields: Optional[dict[str, str]] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
