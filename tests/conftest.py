import pytest
from fastapi.testclient import TestClient

from splitlink import auth, crud, schemas
from splitlink.config import Settings
from splitlink.errors import AuthFailed
from splitlink.main import create_app
from splitlink.twitter import AuthorizationRequest, TwitterIdentity


class FakeTwitter:
    def __init__(self):
        self.identity = TwitterIdentity(user_id="1001", screen_name="alice", token="tok", secret="sec")
        self.fail = False
        self.finished = []

    def start(self):
        if self.fail:
            raise AuthFailed("request token refused")
        return AuthorizationRequest(
            url="https://api.twitter.com/oauth/authenticate?oauth_token=req-token",
            token="req-token",
            secret="req-secret",
        )

    def finish(self, token, secret, verifier):
        if self.fail or verifier != "good":
            raise AuthFailed("access token refused")
        self.finished.append((token, secret, verifier))
        return self.identity


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        secret_key="test-secret",
        admin_twitter_login="boss",
        public_base_url="http://sho.rt",
    )


@pytest.fixture
def twitter():
    return FakeTwitter()


@pytest.fixture
def app(settings, twitter):
    return create_app(settings, twitter=twitter)


@pytest.fixture
def client(app):
    with TestClient(app, follow_redirects=False) as c:
        yield c


@pytest.fixture
def db(app):
    session = app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    counter = iter(range(1, 1000))

    def _make(login=None, admin=False, banned=False):
        n = next(counter)
        user = crud.upsert_twitter_user(
            db,
            twitter_id=f"tw-{n}",
            login=login or f"user{n}",
            access_token="t",
            access_secret="s",
            admin=admin,
        )
        if banned:
            crud.toggle_ban(db, user.id)
        return user

    return _make


@pytest.fixture
def make_link(db):
    def _make(user, targets=(("https://a.example", 50), ("https://b.example", 50)), code=None):
        link_in = schemas.LinkCreate(
            title="t",
            code=code,
            targets=[schemas.TargetIn(url=url, weight=weight) for url, weight in targets],
        )
        return crud.create_link(db, link_in, user.id)

    return _make


@pytest.fixture
def login(client, settings):
    def _login(user):
        client.cookies.set(auth.SESSION_COOKIE, auth.create_access_token(settings, {"sub": str(user.id)}))
        return client

    return _login
