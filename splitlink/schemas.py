import re
from datetime import datetime
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Paths the app routes itself; never usable as short codes
RESERVED = {"", "docs", "openapi.json", "redoc", "static", "about", "links",
            "connect", "oauth_callback", "disconnect", "login_failed", "admin",
            "health", "favicon.ico", "robots.txt"}
CODE_PATTERN = re.compile(r"[A-Za-z0-9_-]{2,32}")


def normalize_url(u: str) -> str:
    u = (u or "").strip()
    if not u:
        raise ValueError("Destination URL required")
    parsed = urlparse(u)
    if not parsed.scheme:
        u = "https://" + u
        parsed = urlparse(u)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("Destination must be an http(s) URL")
    return u


class TargetIn(BaseModel):
    url: str = Field(max_length=1500)
    weight: int = Field(50, ge=0, le=100)

    @field_validator("url")
    @classmethod
    def check_url(cls, v: str) -> str:
        return normalize_url(v)


class LinkCreate(BaseModel):
    title: str | None = Field(None, max_length=255)
    description: str | None = Field(None, max_length=1000)
    code: str | None = None
    targets: list[TargetIn] = Field(min_length=1)

    @field_validator("code")
    @classmethod
    def check_code(cls, v: str | None) -> str | None:
        v = (v or "").strip()
        if not v:
            return None
        if v in RESERVED or not CODE_PATTERN.fullmatch(v):
            raise ValueError("Invalid short code")
        return v


class TargetOut(BaseModel):
    id: int
    url: str
    weight: int
    hits: int

    model_config = ConfigDict(from_attributes=True)


class LinkOut(BaseModel):
    short: str
    short_url: str
    user_id: int
    title: str | None
    description: str | None
    active: bool
    masked: bool
    created_at: datetime | None

    model_config = ConfigDict(from_attributes=True)


class LinkDetail(LinkOut):
    targets: list[TargetOut]
    total_hits: int


class LinkList(BaseModel):
    items: list[LinkOut]
    total: int


class UserOut(BaseModel):
    id: int
    twitter_id: str
    login: str | None
    admin: bool
    banned: bool
    created_at: datetime | None

    model_config = ConfigDict(from_attributes=True)


class BanRequest(BaseModel):
    user_id: int


class AdminSummary(BaseModel):
    users: int
    links: int
    visits: int


class QrOut(BaseModel):
    qr_base64: str
