"""Process configuration, read once from the environment."""
from __future__ import annotations
import os
from dataclasses import dataclass, field

from imagegen_proxy.common.options import GenerationOptions, resolve_options

DEFAULT_UPSTREAM_URL = "https://api.together.xyz/v1/images/generations"
API_KEY_ENV = "TOGETHER_API_KEY"

@dataclass(frozen=True)
class Settings:
    api_key: str | None = field(default=None, repr=False)
    environment: str = "development"
    upstream_url: str = DEFAULT_UPSTREAM_URL
    variant: str = "free"
    options: GenerationOptions = field(default_factory=lambda: resolve_options("free"))
    max_retries: int = 2
    timeout: float = 120.0

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables."""
        variant = os.getenv("GENERATION_VARIANT", "free")
        max_retries = int(os.getenv("UPSTREAM_MAX_RETRIES", "2"))
        if max_retries < 0:
            raise ValueError("UPSTREAM_MAX_RETRIES must be >= 0")
        return cls(
            api_key=os.getenv(API_KEY_ENV) or None,
            environment=os.getenv("APP_ENV", "development"),
            upstream_url=os.getenv("UPSTREAM_URL", DEFAULT_UPSTREAM_URL),
            variant=variant,
            options=resolve_options(variant, os.getenv("GENERATION_OPTIONS_PATH")),
            max_retries=max_retries,
            timeout=float(os.getenv("UPSTREAM_TIMEOUT", "120")),
        )
