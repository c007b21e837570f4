import os
import secrets
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# .env lives in the project root (parent of splitlink/)
ENV_PATH = Path(__file__).parent.parent / ".env"


@dataclass(frozen=True)
class Settings:
    environment: str = "dev"
    database_url: str = "sqlite:///splitlink_dev.db"
    secret_key: str = field(default_factory=lambda: secrets.token_hex(32))
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 1440
    consumer_key: str = ""
    consumer_secret: str = ""
    callback_url: str = ""
    admin_twitter_login: str = ""
    public_base_url: str = "http://localhost:8000"
    short_code_length: int = 6
    short_code_max_attempts: int = 10

    def __post_init__(self):
        # generated codes must still match the redirect route and fit Link.short
        if not 2 <= self.short_code_length <= 32:
            raise RuntimeError("SHORT_CODE_LENGTH must be between 2 and 32")
        if self.short_code_max_attempts < 1:
            raise RuntimeError("SHORT_CODE_MAX_ATTEMPTS must be at least 1")

    @property
    def is_https(self) -> bool:
        return self.public_base_url.startswith("https://")

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv(ENV_PATH)
        environment = os.getenv("ENVIRONMENT", "dev")

        # Dev: SQLite next to the package, Prod: whatever DATABASE_URL says
        database_url = os.getenv("DATABASE_URL")
        secret_key = os.getenv("SECRET_KEY")
        if environment == "prod":
            if not database_url:
                raise RuntimeError("DATABASE_URL must be set in production")
            if not secret_key:
                raise RuntimeError("SECRET_KEY must be set in production")
        else:
            db_path = Path(__file__).parent.parent / "splitlink_dev.db"
            database_url = database_url or f"sqlite:///{db_path}"
            secret_key = secret_key or secrets.token_hex(32)

        public_base_url = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/")
        return cls(
            environment=environment,
            database_url=database_url,
            secret_key=secret_key,
            algorithm=os.getenv("ALGORITHM", "HS256"),
            access_token_expire_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 1440)),
            consumer_key=os.getenv("CONSUMER_KEY", "").strip(),
            consumer_secret=os.getenv("CONSUMER_SECRET", "").strip(),
            callback_url=os.getenv("CALLBACK_URL") or f"{public_base_url}/oauth_callback",
            admin_twitter_login=os.getenv("ADMIN_TWITTER_LOGIN", "").strip(),
            public_base_url=public_base_url,
            short_code_length=int(os.getenv("SHORT_CODE_LENGTH", 6)),
            short_code_max_attempts=int(os.getenv("SHORT_CODE_MAX_ATTEMPTS", 10)),
        )
