from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from the project root so it loads regardless of cwd
_BACKEND_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _BACKEND_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(_ENV_FILE), ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # JWT (no default: the service must not start with a guessable secret)
    secret_key: str
    access_token_expire_minutes: int = 60
    algorithm: str = "HS256"

    # Passwords
    bcrypt_rounds: int = 10
    reset_token_expire_minutes: int = 60
    # Link logged for password resets, token is appended as ?token=...
    reset_password_url: str = "http://localhost:5000/reset-password"

    # Credential store
    users_file: str = str(_BACKEND_ROOT / "users.json")

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Google OAuth
    google_client_id: str = ""
    google_client_secret: str = ""
    google_redirect_uri: str = "http://localhost:5000/auth/google/callback"
    # Attach a Google identity to an existing password account with the same email
    google_link_existing_accounts: bool = True
    oauth_success_redirect: str = "/dashboard"
    oauth_failure_redirect: str = "/login"

    # Env
    env: str = "development"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def google_configured(self) -> bool:
        return bool(self.google_client_id and self.google_client_secret and self.google_redirect_uri)


settings = Settings()
