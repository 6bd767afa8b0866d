import logging
import os
import secrets
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent.parent

DATA_FILE = Path(os.getenv("DATA_FILE", str(BASE_DIR / "data" / "database.json")))
UPLOADS_DIR = Path(os.getenv("UPLOADS_DIR", str(BASE_DIR / "uploads")))
FRONTEND_DIR = Path(os.getenv("FRONTEND_DIR", str(BASE_DIR / "frontend")))

PORT = int(os.getenv("PORT", "2173"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

SECRET_KEY = os.getenv("SECRET_KEY", "")
if not SECRET_KEY:
    # Tokens stop validating after a restart without a configured key.
    logger.warning("SECRET_KEY is not set; using a per-process random key")
    SECRET_KEY = secrets.token_urlsafe(32)
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(7 * 24 * 60)))

# Append the requester's display name to assistant replies.
SIGN_OFF_WITH_DISPLAY_NAME = os.getenv("AIRI_SIGN_OFF", "false").lower() == "true"

TOWNS = ("nairobi", "kiambu", "mombasa", "nakuru")
SOLID_TERMS = ("tv", "chair", "sofa", "bed", "lamp", "fridge", "groceries", "ring light")
VIRTUAL_TERMS = ("account", "followers", "instagram", "tiktok", "page", "login")

NEARBY_LIMIT = 3 # Alternatives shown in an assistant reply
HOTLIST_LIMIT = 50 # Items returned by the public hotlist
DEFAULT_TOWN = "Nairobi"
DEFAULT_STORE_NAME = "My Store"

MAX_IMAGES = 2
MAX_IMAGE_BYTES = 3 * 1024 * 1024
ALLOWED_IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".webp")
