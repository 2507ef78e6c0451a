"""Configuration module for the debounce guard.

This module provides the immutable configuration models used by the guard:

- GuardConfig: settings for one guarded call site or route
- RouteRule: a glob URL pattern bound to route settings
- DebounceSettings: process-wide settings (store backend, routes, responses)

Example:
    Per call site configuration:

        >>> config = GuardConfig(window_ms=5000, message="Order in progress", prefix="order")
        >>> config.enabled
        True

    Route table in the same shape as a properties file:

        >>> settings = DebounceSettings.from_dict({
        ...     "routes": {"/api/orders/**": {"time": 3000, "message": "Slow down"}},
        ... })
        >>> settings.routes[0].pattern
        '/api/orders/**'

    Loading from environment:

        >>> import os
        >>> os.environ['DEBOUNCE_STORE_BACKEND'] = 'redis'
        >>> os.environ['DEBOUNCE_ROUTES'] = '[{"pattern": "/api/**", "time": 2000}]'
        >>> settings = DebounceSettings.from_env()
"""

import json
import os
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

DEFAULT_WINDOW_MS = 1000
DEFAULT_MESSAGE = "Request is being processed, please try again later"
DEFAULT_ROUTE_MESSAGE = "Too many requests, please try again later"
DEFAULT_STORE_ERROR_MESSAGE = "Service temporarily unavailable, please try again later"
DEFAULT_STRATEGY = "default"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class GuardConfig(BaseModel):
    """Debounce settings for one guarded operation.

    Attributes:
        window_ms: How long a fingerprint stays occupied, in milliseconds.
        message: Message returned to rejected callers.
        enabled: When False the guard is skipped entirely.
        prefix: Optional business prefix inserted into the fingerprint.
        strategy: Identifier of the key strategy in the strategy registry.
    """

    window_ms: int = Field(
        default=DEFAULT_WINDOW_MS,
        description="Debounce window in milliseconds (> 0)",
    )
    message: str = Field(
        default=DEFAULT_MESSAGE,
        description="Message returned when a duplicate call is rejected",
    )
    enabled: bool = Field(default=True, description="Whether the guard is active")
    prefix: str = Field(default="", description="Fingerprint prefix for this call site")
    strategy: str = Field(
        default=DEFAULT_STRATEGY,
        description="Key strategy identifier",
    )

    model_config = {"frozen": True}

    @field_validator("window_ms")
    @classmethod
    def validate_window_ms(cls, v: int) -> int:
        """Validate the window is positive.

        Raises:
            ValueError: If the window is zero or negative.
        """
        if v <= 0:
            raise ValueError(f"window_ms must be > 0, got {v}")
        return v


class RouteRule(BaseModel):
    """A glob URL pattern with its route settings.

    Field names follow the route table format (``time``, ``message``,
    ``enabled``); ``prefix`` and ``strategy`` are optional extensions.
    """

    pattern: str = Field(..., min_length=1, description="Glob URL pattern")
    time: int = Field(default=DEFAULT_WINDOW_MS, description="Window in milliseconds")
    message: str = Field(default=DEFAULT_ROUTE_MESSAGE)
    enabled: bool = Field(default=True)
    prefix: str = Field(default="")
    strategy: str = Field(default=DEFAULT_STRATEGY)

    model_config = {"frozen": True}

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError(f"Route pattern must start with '/', got {v!r}")
        return v

    @field_validator("time")
    @classmethod
    def validate_time(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"time must be > 0, got {v}")
        return v

    def to_guard_config(self) -> GuardConfig:
        """Convert the route settings to a GuardConfig."""
        return GuardConfig(
            window_ms=self.time,
            message=self.message,
            enabled=self.enabled,
            prefix=self.prefix,
            strategy=self.strategy,
        )


def parse_routes(v: Any) -> list[RouteRule]:
    """Parse a route table from its accepted representations.

    Accepts a JSON string, a list of rule mappings, or a mapping of pattern
    to route settings. Mapping order is kept as the resolution order.

    Raises:
        ValueError: If the value has an unsupported shape.
    """
    if isinstance(v, str):
        v = json.loads(v) if v.strip() else []

    if isinstance(v, dict):
        return [
            RouteRule(pattern=pattern, **(options or {}))
            for pattern, options in v.items()
        ]

    if isinstance(v, list):
        return [
            item if isinstance(item, RouteRule) else RouteRule.model_validate(item)
            for item in v
        ]

    raise ValueError("routes must be a list, a mapping or a JSON string")


class DebounceSettings(BaseModel):
    """Process-wide settings for the debounce guard.

    Attributes:
        store_backend: Lock store to use: "memory" or "redis".
        redis_url: Connection URL for the Redis lock store.
        store_namespace: Optional prefix applied to every store key.
        default_window_ms: Window used by call sites that do not set one.
        default_message: Rejection message used by call sites that do not set one.
        rejection_status_code: HTTP status of rejection responses.
        store_error_message: Message returned when the store is unavailable.
        include_body: Whether JSON bodies take part in the parameter hash.
        log_level: Level name passed to configure_logging.
        log_json: Emit JSON logs when True, console output when False.
        routes: Ordered route table for the URL-pattern middleware.
    """

    store_backend: Literal["memory", "redis"] = Field(default="memory")
    redis_url: str = Field(default="redis://localhost:6379/0")
    store_namespace: str = Field(default="")
    default_window_ms: int = Field(default=DEFAULT_WINDOW_MS)
    default_message: str = Field(default=DEFAULT_MESSAGE)
    rejection_status_code: int = Field(default=429)
    store_error_message: str = Field(default=DEFAULT_STORE_ERROR_MESSAGE)
    include_body: bool = Field(default=True)
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=True)
    routes: list[RouteRule] = Field(default_factory=list)

    model_config = {"frozen": True}

    @field_validator("routes", mode="before")
    @classmethod
    def validate_routes(cls, v: Any) -> list[RouteRule]:
        return parse_routes(v)

    @field_validator("default_window_ms")
    @classmethod
    def validate_default_window_ms(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"default_window_ms must be > 0, got {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {LOG_LEVELS}, got {v}")
        return level

    @field_validator("rejection_status_code")
    @classmethod
    def validate_rejection_status_code(cls, v: int) -> int:
        if not (100 <= v <= 599):
            raise ValueError(f"rejection_status_code must be a valid HTTP status, got {v}")
        return v

    def guard_config(self, **overrides: Any) -> GuardConfig:
        """Build a GuardConfig seeded with this process's defaults.

        Example:
            >>> DebounceSettings().guard_config(prefix="order").window_ms
            1000
        """
        values: dict[str, Any] = {
            "window_ms": self.default_window_ms,
            "message": self.default_message,
        }
        values.update(overrides)
        return GuardConfig(**values)

    @classmethod
    def from_env(cls, prefix: str = "DEBOUNCE_") -> "DebounceSettings":
        """Create settings from environment variables.

        Variable names are uppercase field names with the prefix, e.g.
        ``DEBOUNCE_REDIS_URL``. ``DEBOUNCE_ROUTES`` holds the route table
        as JSON. Missing variables keep their defaults.

        Args:
            prefix: Prefix for environment variable names.

        Returns:
            DebounceSettings populated from the environment.
        """
        config_dict: dict[str, Any] = {}

        field_types = {
            "store_backend": str,
            "redis_url": str,
            "store_namespace": str,
            "default_window_ms": int,
            "default_message": str,
            "rejection_status_code": int,
            "store_error_message": str,
            "include_body": bool,
            "log_level": str,
            "log_json": bool,
            "routes": str,
        }

        for field_name, field_type in field_types.items():
            env_var = f"{prefix}{field_name.upper()}"
            env_value = os.environ.get(env_var)

            if env_value is not None:
                if field_type is int:
                    config_dict[field_name] = int(env_value)
                elif field_type is bool:
                    config_dict[field_name] = env_value.strip().lower() in {"1", "true", "yes", "on"}
                else:
                    config_dict[field_name] = env_value

        return cls(**config_dict)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "DebounceSettings":
        """Create settings from a dictionary.

        Raises:
            ValidationError: If the dictionary contains invalid values.
        """
        return cls(**config_dict)
