from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException, Request, Response, status
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from splitlink import crud, models
from splitlink.config import Settings
from splitlink.database import get_db

SESSION_COOKIE = "access_token"
OAUTH_COOKIE = "oauth_request"
OAUTH_COOKIE_MINUTES = 10


def create_access_token(settings: Settings, data: dict, expires_delta: timedelta | None = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_token(settings: Settings, token: str | None) -> dict | None:
    if not token:
        return None
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None


def set_session(response: Response, settings: Settings, user: models.User) -> None:
    token = create_access_token(settings, {"sub": str(user.id)})
    response.set_cookie(
        key=SESSION_COOKIE, value=token,
        httponly=True, samesite="lax", secure=settings.is_https, path="/",
        max_age=settings.access_token_expire_minutes * 60,
    )


def set_oauth_request(response: Response, settings: Settings, token: str, secret: str) -> None:
    value = create_access_token(
        settings, {"rt": token, "rts": secret}, timedelta(minutes=OAUTH_COOKIE_MINUTES)
    )
    response.set_cookie(
        key=OAUTH_COOKIE, value=value,
        httponly=True, samesite="lax", secure=settings.is_https, path="/",
        max_age=OAUTH_COOKIE_MINUTES * 60,
    )


def get_oauth_request(request: Request) -> tuple[str, str] | None:
    payload = decode_token(request.app.state.settings, request.cookies.get(OAUTH_COOKIE))
    if not payload or "rt" not in payload or "rts" not in payload:
        return None
    return payload["rt"], payload["rts"]


def clear_session(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE, path="/")
    response.delete_cookie(OAUTH_COOKIE, path="/")


# For gating pages by cookie
def get_user_from_cookie(request: Request, db: Session) -> models.User | None:
    payload = decode_token(request.app.state.settings, request.cookies.get(SESSION_COOKIE))
    if not payload:
        return None
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        return None
    return crud.get_user(db, user_id)


def get_optional_user(request: Request, db: Session = Depends(get_db)) -> models.User | None:
    return get_user_from_cookie(request, db)


def get_current_user(user: models.User | None = Depends(get_optional_user)) -> models.User:
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authorized")
    return user


def require_admin(user: models.User = Depends(get_current_user)) -> models.User:
    if not user.admin:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authorized")
    return user
