"""
Runtime configuration, read from the environment (and ``backend/.env``).
"""

import logging
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

BACKEND_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseModel):
    owner_ids: List[str] = Field(default_factory=list)
    session_secret: str = "super_secret_session"
    webhook_url: Optional[str] = None
    webhook_timeout: float = 5.0
    public_base_url: Optional[str] = None

    store_backend: str = "json"
    data_dir: Path = BACKEND_DIR / "data"
    upload_dir: Path = BACKEND_DIR / "uploads"
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_database: str = "updatepanel"

    token_encryption_secret: str = ""

    discord_client_id: str = ""
    discord_client_secret: str = ""
    callback_url: str = ""

    log_level: str = "INFO"
    port: int = 3000


def _split_ids(raw: str) -> List[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """Build settings from environment variables.

    ``OWNER_IDS`` is a comma separated list; the single ``OWNER_ID`` form is
    also accepted. ``TOKEN_ENCRYPTION_SECRET`` falls back to the session secret.
    """
    load_dotenv(env_file or BACKEND_DIR / ".env")

    owner_ids = _split_ids(os.getenv("OWNER_IDS", "")) or _split_ids(os.getenv("OWNER_ID", ""))
    session_secret = os.getenv("SESSION_SECRET", "super_secret_session")
    if session_secret == "super_secret_session":
        logger.warning("SESSION_SECRET is not set, using the insecure default")

    settings = Settings(
        owner_ids=owner_ids,
        session_secret=session_secret,
        webhook_url=os.getenv("WEBHOOK_URL") or None,
        webhook_timeout=float(os.getenv("WEBHOOK_TIMEOUT") or 5),
        public_base_url=os.getenv("PUBLIC_BASE_URL") or None,
        store_backend=(os.getenv("STORE_BACKEND") or "json").lower(),
        data_dir=Path(os.getenv("DATA_DIR") or BACKEND_DIR / "data"),
        upload_dir=Path(os.getenv("UPLOAD_DIR") or BACKEND_DIR / "uploads"),
        mongodb_uri=os.getenv("MONGODB_URI", "mongodb://localhost:27017"),
        mongodb_database=os.getenv("MONGODB_DATABASE", "updatepanel"),
        token_encryption_secret=os.getenv("TOKEN_ENCRYPTION_SECRET", "") or session_secret,
        discord_client_id=os.getenv("DISCORD_CLIENT_ID", ""),
        discord_client_secret=os.getenv("DISCORD_CLIENT_SECRET", ""),
        callback_url=os.getenv("CALLBACK_URL", ""),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        port=int(os.getenv("PORT") or 3000),
    )
    if not settings.owner_ids:
        logger.warning("No OWNER_IDS configured; every owner-only route will return 403")
    return settings
