"""
API request and response models for the Yearbook REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
entries/models.py, which own the internal domain representation. Route
handlers map between the two.

Request models are lenient on purpose: email/password/payload are optional
here so that "missing field" reaches the store validators and comes back as
the same 400 invalid_input a short password does.

Response field names follow the public contract (camelCase updatedAt);
FastAPI serializes response_model instances by alias.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class Credentials(BaseModel):
    """Request body for POST /api/register and POST /api/login."""

    email: Optional[str] = Field(default=None, max_length=254)
    password: Optional[str] = Field(default=None, max_length=255)


class EntryWrite(BaseModel):
    """Request body for POST /api/entry/{year}. payload is stored as-is."""

    payload: Any = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class OkResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    ok: bool = True


class AuthResponse(BaseModel):
    """Response for register and login. The session token travels only in the cookie."""

    model_config = ConfigDict(frozen=True)

    ok: bool = True
    email: str


class MeResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    authenticated: bool
    email: Optional[str] = None


class YearRow(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    year: int
    updated_at: str = Field(alias="updatedAt")


class YearsResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    years: list[YearRow]


class EntryResponse(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    year: int
    payload: Any
    updated_at: str = Field(alias="updatedAt")


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
