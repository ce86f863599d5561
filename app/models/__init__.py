from app.models.user import User, default_name

__all__ = [
    "User",
    "default_name",
]
