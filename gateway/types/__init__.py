"""
Chat Archive Gateway - Common Type Definitions

Centralized API models used by the HTTP layer.
"""

from .api import (
    LoginRequest,
    LoginResponse,
    AuthCheckResponse,
    ChatPageResponse,
    HealthCheckResponse,
)

__all__ = [
    "LoginRequest",
    "LoginResponse",
    "AuthCheckResponse",
    "ChatPageResponse",
    "HealthCheckResponse",
]
