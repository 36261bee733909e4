"""Typed configuration for the forwarding helpers."""

from .loader import load_config
from .models import ForwardingConfig, HttpClientConfig, RetryPolicy

__all__ = [
    "ForwardingConfig",
    "HttpClientConfig",
    "RetryPolicy",
    "load_config",
]
