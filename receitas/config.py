from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Receitas"
    DEBUG: bool = False
    ALLOWED_ORIGINS: str = "http://localhost:3000"
    LOG_DIR: str = "./logs"

    # Server
    # Default to 0.0.0.0 for development, use env var HOST in production
    HOST: str = "0.0.0.0"  # nosec: B104
    PORT: int = 8000

    # Remote backend
    API_URL: str = Field(
        default="https://receitasbackend.onrender.com",
        validation_alias=AliasChoices("API_URL", "REACT_APP_API_URL"),
    )
    HTTP_TIMEOUT: float = 60.0  # Slow hosted backend, seconds

    # Postal code lookup (ViaCEP)
    VIACEP_URL: str = "https://viacep.com.br/ws"
    VIACEP_TIMEOUT: float = 10.0

    # Profile images
    IMAGE_PRIMARY_PATH: str = "/uploads/profiles"

    # Identity placeholders (patients registered without CPF/email)
    PLACEHOLDER_EMAIL_PREFIX: str = "patient"
    PLACEHOLDER_EMAIL_DOMAIN: str = "placeholder.invalid"
    PLACEHOLDER_PASSWORD: str = "senhaTemp123"
    PLACEHOLDER_BIRTH_DATE: str = "1900-01-01"
    PLACEHOLDER_TAX_ID_UNIQUE_CHECK: bool = False  # Opt-in, see DESIGN.md
    PLACEHOLDER_TAX_ID_MAX_ATTEMPTS: int = 5

    # Sessions
    SESSION_TTL_SECONDS: int = 43200  # 12 hours

    @property
    def allowed_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    @property
    def api_base(self) -> str:
        return self.API_URL.rstrip("/")

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=True, extra="ignore", populate_by_name=True
    )


settings = Settings()  # type: ignore
