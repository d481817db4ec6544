"""Network layer: HTTP transport, retry policy, connectivity and auth events"""

from .auth_events import AuthErrorEvent, AuthEventChannel
from .connectivity import ConnectivityChecker, StaticConnectivity
from .http import HttpTransport
from .response import HttpResponse
from .retry import AIRetryPolicy, is_ai_endpoint

__all__ = [
    "AIRetryPolicy",
    "AuthErrorEvent",
    "AuthEventChannel",
    "ConnectivityChecker",
    "HttpResponse",
    "HttpTransport",
    "StaticConnectivity",
    "is_ai_endpoint",
]
