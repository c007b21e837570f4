import logging
import secrets
import string
from dataclasses import dataclass

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from starlette.requests import Request

from splitlink import models, schemas
from splitlink.errors import AllocationExhausted, CodeTaken

logger = logging.getLogger("splitlink.crud")

ALPHABET = string.ascii_letters + string.digits
MAX_META_LENGTH = 255


def generate_code(length: int = 6) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def allocate_code(db: Session, length: int = 6, max_attempts: int = 10) -> str:
    """Return a random code of ``length`` chars that no Link uses yet.

    Gives up with AllocationExhausted after ``max_attempts`` collisions.
    """
    for _ in range(max_attempts):
        code = generate_code(length)
        if code in schemas.RESERVED:
            continue
        if not get_link(db, code):
            return code
    raise AllocationExhausted(max_attempts)


def _insert_link(db: Session, link_in: schemas.LinkCreate, user_id: int, code: str) -> models.Link:
    link = models.Link(
        short=code,
        user_id=user_id,
        title=link_in.title,
        description=link_in.description,
    )
    link.targets = [models.Target(url=t.url, weight=t.weight, hits=0) for t in link_in.targets]
    db.add(link)
    db.commit()
    db.refresh(link)
    return link


def create_link(
    db: Session,
    link_in: schemas.LinkCreate,
    user_id: int,
    length: int = 6,
    max_attempts: int = 10,
) -> models.Link:
    if link_in.code:
        if get_link(db, link_in.code):
            raise CodeTaken(link_in.code)
        try:
            return _insert_link(db, link_in, user_id, link_in.code)
        except IntegrityError:
            db.rollback()
            raise CodeTaken(link_in.code)

    # One candidate per attempt; the unique index still catches a concurrent insert
    for _ in range(max_attempts):
        try:
            code = allocate_code(db, length, max_attempts=1)
        except AllocationExhausted:
            continue
        try:
            return _insert_link(db, link_in, user_id, code)
        except IntegrityError:
            db.rollback()
            logger.info("Short code %s taken concurrently, retrying", code)
    raise AllocationExhausted(max_attempts)


def get_link(db: Session, code: str) -> models.Link | None:
    return db.query(models.Link).filter_by(short=code).first()


def get_user_link(db: Session, code: str, user_id: int) -> models.Link | None:
    return db.query(models.Link).filter_by(short=code, user_id=user_id).first()


def get_links(db: Session, user_id: int | None = None) -> list[models.Link]:
    query = db.query(models.Link)
    if user_id is not None:
        query = query.filter_by(user_id=user_id)
    return query.order_by(models.Link.created_at.desc(), models.Link.id.desc()).all()


@dataclass(frozen=True)
class VisitMetadata:
    remote_address: str | None = None
    user_agent: str | None = None
    http_referer: str | None = None

    @classmethod
    def from_request(cls, request: Request) -> "VisitMetadata":
        # Behind a proxy, run uvicorn with --proxy-headers so client.host is the visitor
        return cls(
            remote_address=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
            http_referer=request.headers.get("referer"),
        )


def _clip(value: str | None) -> str | None:
    return value[:MAX_META_LENGTH] if value else value


def strip_proxy_chain(address: str | None) -> str | None:
    """``"1.2.3.4, 10.0.0.1"`` -> ``"1.2.3.4"``"""
    if not address:
        return address
    return address.split(",", 1)[0].strip()


def record_visit(db: Session, target: models.Target, meta: VisitMetadata) -> models.Visit:
    """Count one hit on ``target`` and log the visit, in a single transaction."""
    try:
        db.execute(
            update(models.Target)
            .where(models.Target.id == target.id)
            .values(hits=models.Target.hits + 1)
        )
        visit = models.Visit(
            link_id=target.link_id,
            target_id=target.id,
            user_id=target.link.user_id,
            remote_address=_clip(strip_proxy_chain(meta.remote_address)),
            user_agent=_clip(meta.user_agent),
            http_referer=_clip(meta.http_referer),
        )
        db.add(visit)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(target)
    return visit


def count_visits(db: Session, target_id: int | None = None) -> int:
    query = db.query(func.count(models.Visit.id))
    if target_id is not None:
        query = query.filter(models.Visit.target_id == target_id)
    return query.scalar()


def get_user(db: Session, user_id: int) -> models.User | None:
    return db.get(models.User, user_id)


def get_users(db: Session) -> list[models.User]:
    return db.query(models.User).order_by(models.User.id).all()


def upsert_twitter_user(
    db: Session,
    twitter_id: str,
    login: str,
    access_token: str,
    access_secret: str,
    admin: bool = False,
) -> models.User:
    """Create the user on first login; refresh login and tokens afterwards."""
    user = db.query(models.User).filter_by(twitter_id=twitter_id).first()
    if user is None:
        user = models.User(twitter_id=twitter_id)
        db.add(user)
    user.login = login
    user.access_token = access_token
    user.access_secret = access_secret
    if admin:
        user.admin = True
    db.commit()
    db.refresh(user)
    return user


def toggle_ban(db: Session, user_id: int) -> models.User | None:
    user = get_user(db, user_id)
    if not user:
        return None
    user.banned = not user.banned
    db.commit()
    db.refresh(user)
    return user


def counts(db: Session) -> dict[str, int]:
    return {
        "users": db.query(models.User).count(),
        "links": db.query(models.Link).count(),
        "visits": count_visits(db),
    }
