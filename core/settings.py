import json
import os
import secrets

from pathlib import Path
from typing import Any, ClassVar, Optional

from pydantic import PostgresDsn, field_validator
from pydantic.fields import FieldInfo, computed_field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource


class JsonConfigSettingsSource(PydanticBaseSettingsSource):
    """Reads settings from the JSON file named by CONFIG_JSON_PATH, if any."""

    path_env_var: ClassVar[str] = "CONFIG_JSON_PATH"

    def _load(self) -> dict[str, Any]:
        path = os.environ.get(self.path_env_var)
        if not path:
            return {}
        return json.loads(Path(path).read_text(encoding="utf-8"))

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        field_value = self._json_config.get(field_name)
        return field_value, field_name, False

    def prepare_field_value(self, field_name: str, field: FieldInfo, value: Any, value_is_complex: bool) -> Any:  # noqa: ANN401
        return value

    def __call__(self) -> dict[str, Any]:  # noqa: D102
        self._json_config = self._load()
        d: dict[str, Any] = {}

        for field_name, field in self.settings_cls.model_fields.items():
            field_value, field_key, value_is_complex = self.get_field_value(field, field_name)
            field_value = self.prepare_field_value(field_name, field, field_value, value_is_complex)
            if field_value is not None:
                d[field_key] = field_value

        return d


class Settings(BaseSettings):

    SECRET_KEY: str = secrets.token_urlsafe(32)
    JWT_ALGORITHM: str = "HS256"
    SERVER_NAME: Optional[str] = None
    SERVER_ADDRESS: Optional[str] = None
    SERVER_PORT: int = int(os.getenv("PORT", 8000))
    BACKEND_CORS_ORIGINS: list[str] = []

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Any) -> list[str]:
        if isinstance(v, str):
            if v.startswith("["):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    raise ValueError(v) from None
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    POSTGRES_SERVER: Optional[str] = None
    POSTGRES_USER: Optional[str] = None
    POSTGRES_PASSWORD: Optional[str] = None
    POSTGRES_DB: Optional[str] = None
    POSTGRES_POOL_SIZE: int = 20
    POSTGRES_MAX_OVERFLOW: int = 0

    @computed_field
    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        # DATABASE_URL wins (Railway, Render, etc.)
        if "DATABASE_URL" in os.environ:
            db_url = os.environ["DATABASE_URL"]
            if db_url.startswith("postgresql://") and "+psycopg" not in db_url:
                db_url = db_url.replace("postgresql://", "postgresql+psycopg://")
            return db_url

        if not all([self.POSTGRES_USER, self.POSTGRES_PASSWORD, self.POSTGRES_SERVER, self.POSTGRES_DB]):
            return ""

        return str(
            PostgresDsn.build(
                scheme="postgresql+psycopg",
                username=self.POSTGRES_USER,
                password=self.POSTGRES_PASSWORD,
                host=self.POSTGRES_SERVER,
                path=f"{self.POSTGRES_DB or ''}",
            )
        )

    DEFAULT_PAGE_LIMIT: int = 10
    MAX_PAGE_LIMIT: int = 100

    WATCH_FILES: bool = False
    LOG_LEVEL: str = "info"  # critical, error, warning, info, debug

    class Config:
        env_file = "local.env"
        case_sensitive = True
        extra = "allow"
        env_ignore_empty = True

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, env_settings, JsonConfigSettingsSource(settings_cls), dotenv_settings

settings = Settings()
