"""Insight backends: direct Gemini calls and the authenticated backend proxy"""

from .base import AuthProvider, InsightBackend, StaticAuthProvider, create_backend
from .gemini_client import GeminiDirectBackend
from .proxy_client import BackendProxyBackend

__all__ = [
    "AuthProvider",
    "BackendProxyBackend",
    "GeminiDirectBackend",
    "InsightBackend",
    "StaticAuthProvider",
    "create_backend",
]
