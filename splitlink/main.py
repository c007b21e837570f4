import logging
import random
from pathlib import Path

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import FileResponse, JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from splitlink import auth, crud, models, qr_utils, redirects, schemas
from splitlink.config import Settings
from splitlink.database import Base, get_db, make_engine, make_session_factory
from splitlink.errors import AllocationExhausted, AuthFailed, CodeTaken
from splitlink.twitter import TwitterClient

# --- Logging ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)
logger = logging.getLogger("splitlink")

FRONTEND_DIR = Path(__file__).parent / "frontend"

router = APIRouter()


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _link_out(link: models.Link, settings: Settings, detail: bool = False):
    data = dict(
        short=link.short,
        short_url=link.url(settings.public_base_url),
        user_id=link.user_id,
        title=link.title,
        description=link.description,
        active=link.active,
        masked=link.masked,
        created_at=link.created_at,
    )
    if not detail:
        return schemas.LinkOut(**data)
    return schemas.LinkDetail(
        **data,
        targets=[schemas.TargetOut.model_validate(t) for t in link.targets],
        total_hits=sum(t.hits for t in link.targets),
    )


def _login_failed(reason: Exception) -> RedirectResponse:
    logger.warning("Twitter sign-in failed: %s", reason)
    response = RedirectResponse("/login_failed", status_code=307)
    auth.clear_session(response)
    return response


# ---------- Pages ----------
@router.get("/", include_in_schema=False)
def serve_index(user: models.User | None = Depends(auth.get_optional_user)):
    if user:
        return RedirectResponse("/links", status_code=307)
    return FileResponse(FRONTEND_DIR / "index.html")


@router.get("/about", include_in_schema=False)
def serve_about():
    return FileResponse(FRONTEND_DIR / "about.html")


@router.get("/login_failed", include_in_schema=False)
def serve_login_failed():
    return FileResponse(FRONTEND_DIR / "login_failed.html")


# Health check (useful for uptime monitors & load balancers)
@router.get("/health", include_in_schema=False)
def health(settings: Settings = Depends(get_settings)):
    return {"status": "ok", "env": settings.environment}


# ---------- Links ----------
@router.get("/links", response_model=schemas.LinkList)
def list_links(
    db: Session = Depends(get_db),
    user: models.User = Depends(auth.get_current_user),
    settings: Settings = Depends(get_settings),
):
    items = [_link_out(link, settings) for link in crud.get_links(db, user_id=user.id)]
    return {"items": items, "total": len(items)}


@router.get("/links/new", include_in_schema=False)
def new_link_form(user: models.User = Depends(auth.get_current_user)):
    return FileResponse(FRONTEND_DIR / "new_link.html")


@router.post("/links", response_model=schemas.LinkDetail, status_code=status.HTTP_201_CREATED)
def create_link(
    link_in: schemas.LinkCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(auth.get_current_user),
    settings: Settings = Depends(get_settings),
):
    try:
        link = crud.create_link(
            db, link_in, user.id,
            length=settings.short_code_length,
            max_attempts=settings.short_code_max_attempts,
        )
    except CodeTaken as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    logger.info("Created link %s with %d target(s) by=%s", link.short, len(link.targets), user.login)
    return _link_out(link, settings, detail=True)


@router.get("/links/{short}", response_model=schemas.LinkDetail)
def show_link(
    short: str,
    db: Session = Depends(get_db),
    user: models.User = Depends(auth.get_current_user),
    settings: Settings = Depends(get_settings),
):
    link = crud.get_user_link(db, short, user.id)
    if not link:
        raise HTTPException(status_code=404, detail="Link not found")
    return _link_out(link, settings, detail=True)


@router.get("/links/{short}/qr", response_model=schemas.QrOut)
def link_qr(
    short: str,
    db: Session = Depends(get_db),
    user: models.User = Depends(auth.get_current_user),
    settings: Settings = Depends(get_settings),
):
    link = crud.get_user_link(db, short, user.id)
    if not link:
        raise HTTPException(status_code=404, detail="Link not found")
    return {"qr_base64": qr_utils.short_url_qr_base64(link, settings.public_base_url)}


# ---------- Sign in with Twitter ----------
@router.get("/connect", include_in_schema=False)
def connect(request: Request, settings: Settings = Depends(get_settings)):
    try:
        pending = request.app.state.twitter.start()
    except AuthFailed as e:
        return _login_failed(e)
    response = RedirectResponse(pending.url, status_code=307)
    auth.set_oauth_request(response, settings, pending.token, pending.secret)
    return response


@router.get("/oauth_callback", include_in_schema=False)
def oauth_callback(
    request: Request,
    oauth_verifier: str | None = None,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    pending = auth.get_oauth_request(request)
    try:
        if not pending or not oauth_verifier:
            raise AuthFailed("Missing request token or verifier")
        identity = request.app.state.twitter.finish(pending[0], pending[1], oauth_verifier)
    except AuthFailed as e:
        return _login_failed(e)

    admin_login = settings.admin_twitter_login.lower()
    user = crud.upsert_twitter_user(
        db,
        twitter_id=identity.user_id,
        login=identity.screen_name,
        access_token=identity.token,
        access_secret=identity.secret,
        admin=bool(admin_login) and identity.screen_name.lower() == admin_login,
    )
    logger.info("User %s (%s) signed in", user.login, user.id)
    response = RedirectResponse("/links", status_code=307)
    response.delete_cookie(auth.OAUTH_COOKIE, path="/")
    auth.set_session(response, settings, user)
    return response


@router.get("/disconnect", include_in_schema=False)
def disconnect():
    response = RedirectResponse("/", status_code=307)
    auth.clear_session(response)
    return response


# ---------- Admin ----------
@router.get("/admin", response_model=schemas.AdminSummary)
def admin_index(db: Session = Depends(get_db), admin: models.User = Depends(auth.require_admin)):
    return crud.counts(db)


@router.get("/admin/users", response_model=list[schemas.UserOut])
def admin_users(db: Session = Depends(get_db), admin: models.User = Depends(auth.require_admin)):
    return crud.get_users(db)


@router.post("/admin/users/ban", response_model=schemas.UserOut)
def admin_ban(
    ban: schemas.BanRequest,
    db: Session = Depends(get_db),
    admin: models.User = Depends(auth.require_admin),
):
    user = crud.toggle_ban(db, ban.user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    logger.info("User %s %s by=%s", user.id, "banned" if user.banned else "unbanned", admin.login)
    return user


@router.get("/admin/links", response_model=schemas.LinkList)
def admin_links(
    db: Session = Depends(get_db),
    admin: models.User = Depends(auth.require_admin),
    settings: Settings = Depends(get_settings),
):
    items = [_link_out(link, settings) for link in crud.get_links(db)]
    return {"items": items, "total": len(items)}


# Pretty redirect /{code}; keep last so it never shadows the routes above
@router.get("/{code}", include_in_schema=False)
def follow(code: str, request: Request, db: Session = Depends(get_db)):
    if code in schemas.RESERVED or not schemas.CODE_PATTERN.fullmatch(code):
        raise HTTPException(status_code=404, detail="Not found")
    outcome = redirects.resolve(db, code, request.app.state.rng)
    if not isinstance(outcome, redirects.Resolved):
        logger.info("No redirect for %s: %s", code, type(outcome).__name__)
        raise HTTPException(status_code=404, detail="Not found")

    destination = outcome.target.url
    try:
        crud.record_visit(db, outcome.target, crud.VisitMetadata.from_request(request))
    except SQLAlchemyError:
        logger.exception("Failed to record visit for %s", code)
    return RedirectResponse(url=destination, status_code=307)


async def allocation_exhausted_handler(request: Request, exc: AllocationExhausted):
    logger.error("Short code allocation failed: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Could not allocate a short code, try again"},
    )


def create_app(settings: Settings | None = None, twitter=None) -> FastAPI:
    settings = settings or Settings.from_env()

    app = FastAPI(
        title="splitlink",
        description="Short links that split traffic across weighted destinations.",
        version="1.0.0",
    )
    app.state.settings = settings

    # --- DB tables ---
    engine = make_engine(settings)
    Base.metadata.create_all(bind=engine)
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)

    app.state.twitter = twitter or TwitterClient(settings)
    app.state.rng = random.Random()

    app.add_exception_handler(AllocationExhausted, allocation_exhausted_handler)
    app.mount("/static", StaticFiles(directory=FRONTEND_DIR), name="static")
    app.include_router(router)
    return app
