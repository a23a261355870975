import os
from dataclasses import dataclass

from . import __version__

_TRUTHY = {"1", "true", "yes", "on"}


def is_truthy(value: object) -> bool:
    """Interpret a flag that may arrive as an env or form string."""
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return bool(value)


def env_flag(name: str, default: str) -> bool:
    return is_truthy(os.getenv(name, default))


@dataclass(frozen=True)
class Settings:
    """Service configuration, read from environment variables."""

    host: str = "0.0.0.0"
    port: int = 8080
    reload: bool = True
    log_level: str = "INFO"
    version: str = __version__
    max_upload_mb: int = 50
    inkscape_bin: str = "inkscape"
    conversion_timeout_sec: float = 120.0
    max_output_mb: int = 10
    scratch_dir: str | None = None

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    @property
    def max_output_bytes(self) -> int:
        return self.max_output_mb * 1024 * 1024

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8080")),
            # Enable reload in dev unless explicitly disabled
            reload=env_flag("RELOAD", "true"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            version=os.getenv("CONVERT_SERVICE_VERSION", __version__),
            max_upload_mb=int(os.getenv("MAX_UPLOAD_MB", "50")),
            inkscape_bin=os.getenv("INKSCAPE_BIN", "inkscape"),
            conversion_timeout_sec=float(os.getenv("CONVERSION_TIMEOUT_SEC", "120")),
            max_output_mb=int(os.getenv("MAX_OUTPUT_MB", "10")),
            scratch_dir=os.getenv("SCRATCH_DIR") or None,
        )
