"""
Client side of the relay: backend API client and the custom bundler transport.
"""

from .backend import BackendApiClient
from .transport import SUPPORTED_METHODS, TransportAdapter

__all__ = [
    "BackendApiClient",
    "TransportAdapter",
    "SUPPORTED_METHODS",
]
