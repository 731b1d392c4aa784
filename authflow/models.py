from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class UserSession(BaseModel):
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    is_logged: bool = False
    user: Optional[Dict[str, Any]] = None


class RefreshResult(BaseModel):
    # body of POST /auth/refresh; refreshToken and user may be omitted
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    access_token: str = Field(alias="accessToken", min_length=1)
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")
    user: Optional[Dict[str, Any]] = None


class LoginResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    access_token: str = Field(alias="accessToken", min_length=1)
    refresh_token: str = Field(alias="refreshToken", min_length=1)
    user: Dict[str, Any]


class SessionEvent(BaseModel):
    kind: Literal["logged_in", "refreshed", "logged_out"]
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    user: Optional[Dict[str, Any]] = None

    @classmethod
    def from_session(cls, kind: str, s: UserSession) -> "SessionEvent":
        return cls(kind=kind, access_token=s.access_token, refresh_token=s.refresh_token, user=s.user)

    @classmethod
    def logged_out(cls) -> "SessionEvent":
        return cls(kind="logged_out")
