import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


class ConfigError(RuntimeError):
    """Raised when a required setting is missing from the environment."""


def _split(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    database_url: str = "sqlite:///./budget.db"
    auth_public_key: Optional[str] = None
    auth_algorithms: List[str] = field(default_factory=lambda: ["RS256"])
    auth_issuer: Optional[str] = None
    auth_audience: Optional[str] = None
    api_url: Optional[str] = None
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    port: int = 3000

    @classmethod
    def from_env(cls) -> "Settings":
        public_key = os.getenv("AUTH_PUBLIC_KEY")
        if public_key:
            # keys pasted into .env files usually carry literal "\n"
            public_key = public_key.replace("\\n", "\n")
        return cls(
            database_url=os.getenv("DATABASE_URL", "sqlite:///./budget.db"),
            auth_public_key=public_key or None,
            auth_algorithms=_split(os.getenv("AUTH_ALGORITHMS", "RS256")),
            auth_issuer=os.getenv("AUTH_ISSUER") or None,
            auth_audience=os.getenv("AUTH_AUDIENCE") or None,
            api_url=os.getenv("API_URL") or None,
            cors_origins=_split(os.getenv("CORS_ORIGINS", "*")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            port=int(os.getenv("PORT", "3000")),
        )

    def require_server(self) -> "Settings":
        if not self.auth_public_key:
            raise ConfigError("AUTH_PUBLIC_KEY must be set")
        return self

    def require_client(self) -> "Settings":
        if not self.api_url:
            raise ConfigError("API_URL must be set")
        return self


def get_settings() -> Settings:
    return Settings.from_env()
