"""Pydantic schemas for credentials and identities."""

from pydantic import BaseModel, Field


class Credentials(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)


class Identity(BaseModel):
    """Who the session belongs to. Never carries password material."""

    username: str


class LoginState(BaseModel):
    authenticated: bool
    username: str | None = None


class LogoutResult(BaseModel):
    username: str
    logged_out: bool = True
