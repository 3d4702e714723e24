"""
Remote agent transport.
"""

from .client import A2AClient, A2ATransport, normalize_url

__all__ = [
    "A2AClient",
    "A2ATransport",
    "normalize_url",
]
