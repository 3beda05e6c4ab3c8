# bustracker/config.py - environment driven settings
import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

# Use an absolute path so the app always hits the same SQLite file, no matter
# where Uvicorn is launched from.
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DEFAULT_DATABASE_URL = f"sqlite:///{os.path.join(BASE_DIR, 'bustracker.db')}"
DEFAULT_JWT_SECRET = "bustracker-dev-secret-key-change-in-production"


@dataclass(frozen=True)
class Settings:
    """
    Everything the app needs from the environment, resolved once and passed
    explicitly into create_app() and the token codec.
    """

    database_url: str = DEFAULT_DATABASE_URL
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_expiry_hours: float = 24
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    log_dir: str = ""

    # seed / provisioning
    admin_name: str = "System Admin"
    admin_email: str = "admin@bus.com"
    admin_password: str = "admin123"

    host: str = "127.0.0.1"
    port: int = 8000

    def validate(self) -> None:
        if not self.jwt_secret:
            raise ValueError("JWT_SECRET must not be empty")
        if self.jwt_expiry_hours <= 0:
            raise ValueError("JWT_EXPIRY_HOURS must be > 0")


def _split(value: str) -> List[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


def load_settings() -> Settings:
    load_dotenv()
    settings = Settings(
        database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
        jwt_secret=os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET),
        jwt_expiry_hours=float(os.getenv("JWT_EXPIRY_HOURS", "24")),
        cors_origins=_split(os.getenv("CORS_ORIGINS", "*")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_dir=os.getenv("LOG_DIR", ""),
        admin_name=os.getenv("ADMIN_NAME", "System Admin"),
        admin_email=os.getenv("ADMIN_EMAIL", "admin@bus.com"),
        admin_password=os.getenv("ADMIN_PASSWORD", "admin123"),
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
    )
    settings.validate()
    return settings
