"""Configuration management for fintrack."""

from dataclasses import dataclass, field
from pathlib import Path

from fintrack.exceptions import ConfigurationError


@dataclass
class ApiConfig:
    """REST API client configuration."""

    base_url: str = "http://localhost:3001/api"
    timeout_seconds: float = 10.0
    max_workers: int = 2

    def __post_init__(self) -> None:
        if self.timeout_seconds <= 0:
            raise ConfigurationError(f"timeout_seconds must be positive, got {self.timeout_seconds}")
        if self.max_workers < 1:
            raise ConfigurationError(f"max_workers must be at least 1, got {self.max_workers}")
        self.base_url = self.base_url.rstrip("/")

    def url(self, path: str) -> str:
        """Join an endpoint path onto the base URL."""
        return f"{self.base_url}/{path.lstrip('/')}"


@dataclass
class OutputConfig:
    """Output configuration."""

    json_output_dir: Path = field(default_factory=lambda: Path("output"))
    pretty_json: bool = False


@dataclass
class FintrackConfig:
    """Main configuration for fintrack."""

    api: ApiConfig = field(default_factory=ApiConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    seed: int | None = None
    log_level: str = "INFO"
    log_format: str = "standard"

    @classmethod
    def from_env(cls) -> "FintrackConfig":
        """Create config from environment variables."""
        import os

        try:
            api = ApiConfig(
                base_url=os.getenv("FINTRACK_API_URL", "http://localhost:3001/api"),
                timeout_seconds=float(os.getenv("FINTRACK_API_TIMEOUT", "10")),
                max_workers=int(os.getenv("FINTRACK_MAX_WORKERS", "2")),
            )
            seed = int(os.getenv("SEED")) if os.getenv("SEED") else None
        except ValueError as exc:
            raise ConfigurationError(f"Invalid numeric setting: {exc}") from exc

        output = OutputConfig(
            json_output_dir=Path(os.getenv("OUTPUT_DIR", "output")),
            pretty_json=os.getenv("PRETTY_JSON", "false").lower() == "true",
        )

        log_format = os.getenv("LOG_FORMAT", "standard")
        if log_format not in ("standard", "json"):
            raise ConfigurationError(f"LOG_FORMAT must be 'standard' or 'json', got {log_format!r}")

        return cls(
            api=api,
            output=output,
            seed=seed,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=log_format,
        )
