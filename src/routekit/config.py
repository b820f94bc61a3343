"""
Server configuration.

Every knob lives on one dataclass. It can be built in code, or from
ROUTEKIT_* environment variables:

    ROUTEKIT_HOST        bind address               127.0.0.1
    ROUTEKIT_PORT        listen port                9000
    ROUTEKIT_WORKERS     max worker threads         16
    ROUTEKIT_TIMEOUT     socket timeout, seconds    30
    ROUTEKIT_STATIC_DIR  asset root                 assets
    ROUTEKIT_LOG_LEVEL   logging level              INFO
    ROUTEKIT_LOG_FORMAT  access log format          text

Values are checked once, at startup, by validate().
"""

from dataclasses import dataclass
from typing import Optional
import logging
import os


ENV_PREFIX = "ROUTEKIT_"

LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    # Network
    host: str = "127.0.0.1"
    port: int = 9000
    """Port 0 binds an ephemeral port; the bound one is on the server."""
    backlog: int = 128
    buffer_size: int = 8192
    timeout: Optional[float] = 30.0

    # HTTP
    keep_alive: bool = True
    keep_alive_timeout: float = 5.0
    max_request_size: int = 10 * 1024 * 1024

    # Worker threads
    min_workers: int = 4
    max_workers: int = 16

    # Static files; None disables the /static route
    static_dir: Optional[str] = "assets"
    static_url_prefix: str = "/static"

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"

    server_name: str = "routekit/1.0"

    @classmethod
    def from_env(cls, environ=None) -> "ServerConfig":
        """
        Build a config from ROUTEKIT_* variables, defaults elsewhere.

        Raises:
            ValueError: If a numeric variable does not parse.
        """
        env = os.environ if environ is None else environ

        def get(name: str, default):
            return env.get(ENV_PREFIX + name, default)

        defaults = cls()
        max_workers = int(get("WORKERS", defaults.max_workers))
        return cls(
            host=get("HOST", defaults.host),
            port=int(get("PORT", defaults.port)),
            timeout=float(get("TIMEOUT", defaults.timeout)),
            min_workers=min(defaults.min_workers, max_workers),
            max_workers=max_workers,
            static_dir=get("STATIC_DIR", defaults.static_dir) or None,
            log_level=get("LOG_LEVEL", defaults.log_level).upper(),
            log_format=get("LOG_FORMAT", defaults.log_format).lower(),
        )

    def validate(self) -> None:
        """
        Raises:
            ValueError: On the first invalid setting.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")
        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")
        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")
        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        if self.max_request_size < self.buffer_size:
            raise ValueError("max_request_size must be >= buffer_size")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Unknown log level: {self.log_level}")
        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}")
        if not self.static_url_prefix.startswith("/"):
            raise ValueError("static_url_prefix must start with '/'")
