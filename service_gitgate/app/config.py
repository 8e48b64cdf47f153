"""
Gateway settings: listener, GitHub upstream, device trust, cache, signing and audit.
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import AliasChoices, BaseModel, Field

from shared.config import BaseConfig, load_json_config
from shared.errors import ConfigurationError
from shared.logging import get_logger

from .models import AuthMethod

logger = get_logger("gitgate.config")


class GitHubSettings(BaseModel):
    token: Optional[str] = None
    api_url: str = "https://api.github.com"
    cache_dir: Optional[str] = None
    cache_ttl_seconds: int = 3600
    cache_backend: str = "file"
    redis_url: Optional[str] = None


class AuthSettings(BaseModel):
    """Selected trust method plus an opaque config mapping per method."""

    method: Optional[str] = None
    mdm_token: Dict[str, Any] = Field(
        default_factory=dict, validation_alias=AliasChoices("mdm_token", "jamf")
    )
    coordination_service: Dict[str, Any] = Field(
        default_factory=dict, validation_alias=AliasChoices("coordination_service", "tailscale")
    )
    certificate_subject: Dict[str, Any] = Field(
        default_factory=dict, validation_alias=AliasChoices("certificate_subject", "mtls")
    )

    def method_config(self, method: Optional[AuthMethod] = None) -> Dict[str, Any]:
        """Config mapping for the given (or selected) method."""
        method = method or AuthMethod.parse(self.method)
        if method is AuthMethod.MDM_TOKEN:
            return self.mdm_token
        if method is AuthMethod.COORDINATION_SERVICE:
            return self.coordination_service
        if method is AuthMethod.CERTIFICATE_SUBJECT:
            return self.certificate_subject
        return {}


class RateLimitSettings(BaseModel):
    requests_per_minute: int = 60


class SigningSettings(BaseModel):
    enabled: bool = False
    private_key_path: Optional[str] = None


class AuditSettings(BaseModel):
    log_file: Optional[str] = None


class TLSSettings(BaseModel):
    certfile: Optional[str] = None
    keyfile: Optional[str] = None


class GatewaySettings(BaseConfig):
    """Complete gateway configuration."""

    upstream_timeout_seconds: float = 10.0

    github: GitHubSettings = Field(default_factory=GitHubSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    signing: SigningSettings = Field(default_factory=SigningSettings)
    audit: AuditSettings = Field(default_factory=AuditSettings)
    tls: TLSSettings = Field(default_factory=TLSSettings)


def load_config(config_path: Optional[Union[str, Path]] = None) -> GatewaySettings:
    """Load settings from the JSON config file, with environment fallback."""
    data = load_json_config(config_path)
    settings = GatewaySettings(**data)
    logger.debug("Configuration loaded", auth_method=settings.auth.method)
    return settings


def validate_config(settings: GatewaySettings) -> bool:
    """Startup validation. Raises ConfigurationError on the first problem."""
    if not settings.port or settings.port < 1 or settings.port > 65535:
        raise ConfigurationError("Invalid port number", details={"port": settings.port})

    if not settings.github.token:
        raise ConfigurationError("GitHub token is required")

    backend = settings.github.cache_backend.lower()
    if backend == "file":
        if not settings.github.cache_dir:
            raise ConfigurationError("Cache directory is required")
    elif backend == "redis":
        if not settings.github.redis_url:
            raise ConfigurationError("Redis URL is required for the redis cache backend")
    else:
        raise ConfigurationError(
            f"Unknown cache backend '{settings.github.cache_backend}'",
            details={"cache_backend": settings.github.cache_backend}
        )

    if settings.github.cache_ttl_seconds <= 0:
        raise ConfigurationError("Cache TTL must be positive")

    if not settings.auth.method:
        raise ConfigurationError("Auth method is required")
    if AuthMethod.parse(settings.auth.method) is None:
        raise ConfigurationError(
            f"Unknown auth method '{settings.auth.method}'",
            details={"method": settings.auth.method}
        )

    if settings.rate_limit.requests_per_minute < 1:
        raise ConfigurationError("requests_per_minute must be at least 1")

    return True
