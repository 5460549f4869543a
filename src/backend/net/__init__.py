"""
Network utilities: politeness throttle and a no-retry HTTP client.
"""

from .throttle import Throttle, ThrottleConfig
from .http import HttpClient, basic_auth_header

__all__ = [
    "Throttle",
    "ThrottleConfig",
    "HttpClient",
    "basic_auth_header",
]
