from dataclasses import dataclass

import requests
from requests_oauthlib import OAuth1Session
from requests_oauthlib.oauth1_session import TokenMissing, TokenRequestDenied

from splitlink.config import Settings
from splitlink.errors import AuthFailed

REQUEST_TOKEN_URL = "https://api.twitter.com/oauth/request_token"
AUTHENTICATE_URL = "https://api.twitter.com/oauth/authenticate"
ACCESS_TOKEN_URL = "https://api.twitter.com/oauth/access_token"

OAUTH_ERRORS = (TokenRequestDenied, TokenMissing, ValueError, requests.RequestException)


@dataclass(frozen=True)
class AuthorizationRequest:
    url: str
    token: str
    secret: str


@dataclass(frozen=True)
class TwitterIdentity:
    user_id: str
    screen_name: str
    token: str
    secret: str


class TwitterClient:
    """Three-legged OAuth 1.0a sign-in with Twitter."""

    def __init__(self, settings: Settings):
        self.consumer_key = settings.consumer_key
        self.consumer_secret = settings.consumer_secret
        self.callback_url = settings.callback_url

    def start(self) -> AuthorizationRequest:
        oauth = OAuth1Session(
            self.consumer_key,
            client_secret=self.consumer_secret,
            callback_uri=self.callback_url,
        )
        try:
            tokens = oauth.fetch_request_token(REQUEST_TOKEN_URL)
        except OAUTH_ERRORS as e:
            raise AuthFailed(f"Request token refused: {e}") from e
        return AuthorizationRequest(
            url=oauth.authorization_url(AUTHENTICATE_URL),
            token=tokens["oauth_token"],
            secret=tokens["oauth_token_secret"],
        )

    def finish(self, token: str, secret: str, verifier: str) -> TwitterIdentity:
        oauth = OAuth1Session(
            self.consumer_key,
            client_secret=self.consumer_secret,
            resource_owner_key=token,
            resource_owner_secret=secret,
            verifier=verifier,
        )
        try:
            access = oauth.fetch_access_token(ACCESS_TOKEN_URL)
        except OAUTH_ERRORS as e:
            raise AuthFailed(f"Access token refused: {e}") from e
        if not access.get("user_id"):
            raise AuthFailed("Access token response has no user_id")
        return TwitterIdentity(
            user_id=access["user_id"],
            screen_name=access.get("screen_name", ""),
            token=access["oauth_token"],
            secret=access["oauth_token_secret"],
        )
