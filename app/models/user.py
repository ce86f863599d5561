from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class User(BaseModel):
    """One account in the credential store.

    Serialized with the camelCase keys used by users.json
    (passwordHash, googleId, resetToken, resetTokenExpiry).
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",  # keep unknown keys already present in the file
    )

    email: str
    name: str | None = None
    password_hash: str | None = None  # None for Google-only users
    google_id: str | None = None
    reset_token: str | None = None
    reset_token_expiry: datetime | None = None

    def set_reset_token(self, token: str, expiry: datetime) -> None:
        self.reset_token = token
        self.reset_token_expiry = expiry

    def clear_reset_token(self) -> None:
        self.reset_token = None
        self.reset_token_expiry = None


def default_name(email: str) -> str:
    return email.split("@")[0]
