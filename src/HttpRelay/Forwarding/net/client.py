"""
HTTPX Client Factory & Default Client Management.

Builds the transport used by the retrying sender:
- Explicit timeouts, pool limits and TLS verification from ForwardingConfig
- No automatic redirects unless configured
- Lazy process default (PID-aware for fork safety) for callers that do not
  pass their own client

Callers that need per-call configuration or a fake transport in tests build
their own client with :func:`build_http_client` (or any ``httpx.Client``) and
hand it to :class:`~HttpRelay.Forwarding.net.retry.RetryingSender`.
"""

from __future__ import annotations

import logging
import os
import threading
from typing import Optional

import httpx

from ..config.models import ForwardingConfig

logger = logging.getLogger(__name__)

# ============================================================================
# Default Client State (PID-aware for fork safety)
# ============================================================================

_CLIENT: Optional[httpx.Client] = None
_BIND_HASH: Optional[str] = None
_BIND_PID: Optional[int] = None
_LOCK = threading.Lock()


def build_http_client(
    config: Optional[ForwardingConfig] = None,
    *,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """Build a new HTTPX client from ``config``.

    Args:
        config: Forwarding configuration; defaults are used when omitted.
        transport: Optional transport override (e.g. ``httpx.MockTransport``).

    Returns:
        A configured :class:`httpx.Client`. The caller owns and closes it.
    """
    cfg = (config or ForwardingConfig()).http

    timeout = httpx.Timeout(
        connect=cfg.timeout_connect_s,
        read=cfg.timeout_read_s,
        write=cfg.timeout_write_s,
        pool=cfg.timeout_pool_s,
    )
    limits = httpx.Limits(
        max_connections=cfg.max_connections,
        max_keepalive_connections=cfg.max_keepalive_connections,
        keepalive_expiry=cfg.keepalive_expiry_s,
    )

    client = httpx.Client(
        transport=transport,
        timeout=timeout,
        limits=limits,
        verify=cfg.verify_tls,
        trust_env=cfg.trust_env,
        follow_redirects=cfg.follow_redirects,
        headers={"User-Agent": cfg.user_agent},
    )
    logger.debug(
        "HTTPX client created: verify=%s, follow_redirects=%s", cfg.verify_tls, cfg.follow_redirects
    )
    return client


def get_http_client(config: Optional[ForwardingConfig] = None) -> httpx.Client:
    """
    Lazy process-default HTTPX client.

    After fork() a new client is created so connections are never shared
    across processes. A different config after binding is warned about but
    does not rebuild the client; call :func:`reset_http_client` first.
    """
    global _CLIENT, _BIND_HASH, _BIND_PID

    cfg = config or ForwardingConfig()
    pid = os.getpid()

    with _LOCK:
        if _CLIENT is None or _BIND_PID != pid:
            logger.debug("Creating default HTTPX client (pid=%s, existing_pid=%s)", pid, _BIND_PID)
            _CLIENT = build_http_client(cfg)
            _BIND_PID = pid
            _BIND_HASH = cfg.config_hash()
        elif config is not None and _BIND_HASH != cfg.config_hash():
            logger.warning(
                "HTTP client settings changed after binding; existing default client unchanged."
            )
            _BIND_HASH = cfg.config_hash()

        return _CLIENT


def close_http_client() -> None:
    """Close the default client, if any."""
    global _CLIENT, _BIND_HASH, _BIND_PID
    with _LOCK:
        if _CLIENT is not None:
            _CLIENT.close()
            logger.debug("Default HTTPX client closed")
        _CLIENT = None
        _BIND_HASH = None
        _BIND_PID = None


def reset_http_client() -> None:
    """Reset the default client (for testing)."""
    close_http_client()
