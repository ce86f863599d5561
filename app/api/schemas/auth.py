from pydantic import BaseModel

# Fields are optional so that missing values reach the handlers and get the
# 400 messages clients expect instead of a generic validation error.


class SignupRequest(BaseModel):
    email: str | None = None
    password: str | None = None
    name: str | None = None


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


class ForgotPasswordRequest(BaseModel):
    email: str | None = None


class ResetPasswordRequest(BaseModel):
    token: str | None = None
    password: str | None = None


class MessageResponse(BaseModel):
    message: str


class LoginResponse(BaseModel):
    message: str
    token: str
