"""
Pydantic v2 Configuration Models for HttpRelay Forwarding

Provides strict, typed configuration for the forwarding helpers:
- HTTP client settings (timeouts, pool limits, TLS)
- Retry and backoff policy for the retrying sender
- Top-level ForwardingConfig as single source of truth

All models use extra="forbid" for strict validation. Environment variables
and programmatic overrides follow: file < env < overrides precedence.
"""

from __future__ import annotations

import hashlib
import json
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ============================================================================
# Policies
# ============================================================================


class RetryPolicy(BaseModel):
    """Transport-failure retry behaviour of the retrying sender."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    max_attempts: int = Field(default=3, description="Total send attempts (initial + retries)")
    backoff_base_ms: float = Field(default=10.0, description="Delay before the first retry in ms")
    backoff_factor: float = Field(default=2.0, description="Multiplier applied after each retry")

    @field_validator("max_attempts")
    @classmethod
    def validate_max_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_attempts must be >= 1")
        return v

    @field_validator("backoff_base_ms")
    @classmethod
    def validate_backoff_base(cls, v: float) -> float:
        if v < 0:
            raise ValueError("backoff_base_ms must be >= 0")
        return v

    @field_validator("backoff_factor")
    @classmethod
    def validate_factor(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("backoff_factor must be > 0")
        return v


class HttpClientConfig(BaseModel):
    """Configuration for the underlying HTTPX client."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    user_agent: str = Field(default="HttpRelay/Forwarding", description="User-Agent string")
    timeout_connect_s: float = Field(default=10.0, description="Connection timeout in seconds")
    timeout_read_s: float = Field(default=60.0, description="Read timeout in seconds")
    timeout_write_s: float = Field(default=60.0, description="Write timeout in seconds")
    timeout_pool_s: float = Field(default=10.0, description="Pool acquire timeout in seconds")
    max_connections: int = Field(default=100, description="Maximum open connections")
    max_keepalive_connections: int = Field(default=20, description="Idle connections kept")
    keepalive_expiry_s: float = Field(default=30.0, description="Idle connection lifetime")
    verify_tls: bool = Field(default=True, description="Verify TLS certificates")
    trust_env: bool = Field(default=True, description="Honour proxy/SSL environment variables")
    follow_redirects: bool = Field(default=False, description="Follow 3xx automatically")

    @field_validator("timeout_connect_s", "timeout_read_s", "timeout_write_s", "timeout_pool_s")
    @classmethod
    def validate_timeouts(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts must be > 0")
        return v

    @field_validator("max_connections", "max_keepalive_connections")
    @classmethod
    def validate_pool(cls, v: int) -> int:
        if v < 0:
            raise ValueError("pool limits must be >= 0")
        return v


# ============================================================================
# Top-level
# ============================================================================


class ForwardingConfig(BaseModel):
    """Complete forwarding configuration."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    http: HttpClientConfig = Field(default_factory=HttpClientConfig)
    retry: RetryPolicy = Field(default_factory=RetryPolicy)

    def config_hash(self) -> str:
        """
        Compute deterministic SHA256 hash of config for reproducibility.

        Returns:
            Hex-encoded SHA256 hash of normalized config JSON.
        """
        normalized = json.dumps(self.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(normalized.encode()).hexdigest()
