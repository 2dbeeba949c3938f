"""
Services backing the HTTP API.
"""

from .auth import AuthService
from .chat import ChatLog, ChatLogError

__all__ = [
    "AuthService",
    "ChatLog",
    "ChatLogError",
]
