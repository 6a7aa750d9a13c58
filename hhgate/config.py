import os
import logging
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

from .errors import ConfigError

logger = logging.getLogger("hhgate.config")

STORAGE_BACKENDS = ("mongodb", "memory")


class Settings(BaseModel):
    """Runtime configuration, sourced from the environment."""

    port: int = 3000
    app_env: str = "development"
    hh_client_id: str
    hh_client_secret: str
    hh_redirect_uri: str
    mongodb_uri: str = "mongodb://localhost:27017"
    db_name: str = "hhgate"
    users_collection: str = "users"
    storage_backend: str = "mongodb"
    hh_api_base_url: str = "https://api.hh.ru"
    hh_authorize_url: str = "https://hh.ru/oauth/authorize"
    hh_timeout: float = 10.0
    hh_user_agent: str = "hhgate/0.1.0"
    api_token: Optional[str] = None
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``environ`` (``os.environ`` after loading ``.env``).

        Raises:
            ConfigError: if a required variable is missing or a value does not parse.
        """
        if environ is None:
            # Variables already set in the process win over .env values
            load_dotenv(override=False)
            environ = os.environ

        def get(key: str, default: Optional[str] = None) -> str:
            value = environ.get(key) or default
            if not value:
                raise ConfigError(f"Missing environment variable: {key}")
            return value

        try:
            port = int(get("PORT", "3000"))
        except ValueError:
            raise ConfigError(f"PORT must be an integer, got {environ.get('PORT')!r}")
        try:
            timeout = float(get("HH_TIMEOUT", "10"))
        except ValueError:
            raise ConfigError(f"HH_TIMEOUT must be a number, got {environ.get('HH_TIMEOUT')!r}")

        backend = get("STORAGE_BACKEND", "mongodb").lower()
        if backend not in STORAGE_BACKENDS:
            raise ConfigError(
                f"STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)}, got {backend!r}"
            )

        settings = cls(
            port=port,
            app_env=get("APP_ENV", "development"),
            hh_client_id=get("HH_CLIENT_ID"),
            hh_client_secret=get("HH_CLIENT_SECRET"),
            hh_redirect_uri=get("HH_REDIRECT_URI"),
            mongodb_uri=get("MONGODB_URI", "mongodb://localhost:27017"),
            db_name=get("DB_NAME", "hhgate"),
            users_collection=get("USERS_COLLECTION", "users"),
            storage_backend=backend,
            hh_api_base_url=get("HH_API_BASE_URL", "https://api.hh.ru"),
            hh_authorize_url=get("HH_AUTHORIZE_URL", "https://hh.ru/oauth/authorize"),
            hh_timeout=timeout,
            hh_user_agent=get("HH_USER_AGENT", "hhgate/0.1.0"),
            api_token=environ.get("API_TOKEN") or None,
            log_level=get("LOG_LEVEL", "INFO").upper(),
        )
        logger.info("Loaded settings for %s environment (storage: %s)", settings.app_env, backend)
        return settings
