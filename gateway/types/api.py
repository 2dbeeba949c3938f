"""
API request/response models for FastAPI endpoints.

Pydantic models for HTTP request/response serialization. Field names follow
the camelCase keys the chat frontend already consumes.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class LoginRequest(BaseModel):
    """Request body for admin login."""

    username: str
    password: str


class LoginResponse(BaseModel):
    """Response for login request."""

    success: bool
    token: Optional[str] = None


class AuthCheckResponse(BaseModel):
    """Response for token check."""

    model_config = ConfigDict(populate_by_name=True)

    logged_in: bool = Field(alias="loggedIn")


class ChatPageResponse(BaseModel):
    """One page of chat history, oldest message first."""

    model_config = ConfigDict(populate_by_name=True)

    messages: List[Any]
    page: int
    total_pages: int = Field(alias="totalPages")


class HealthCheckResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: str
    media: Optional[Dict[str, Any]] = None
