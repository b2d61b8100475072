# storefront/utils/settings.py
import os
from dotenv import load_dotenv

load_dotenv()


def _get_bool(key: str, default: bool = False) -> bool:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


#price store - plik json albo url
PRICE_STORE_PATH = os.getenv("PRICE_STORE_PATH", "data/prices.json")
PRICE_STORE_URL = os.getenv("PRICE_STORE_URL", "")

IMAGE_MAPPING_PATH = os.getenv("IMAGE_MAPPING_PATH", "data/item-images.json")
IMAGE_MAPPING_URL = os.getenv("IMAGE_MAPPING_URL", "")
PLACEHOLDER_IMAGE = os.getenv("PLACEHOLDER_IMAGE", "/icon.png")
IMAGE_RETRY_SECONDS = float(os.getenv("IMAGE_RETRY_SECONDS", 30))

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./storefront.db")
REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379/0")
CART_BACKEND = os.getenv("CART_BACKEND", "sql")
CART_SAVE_DEBOUNCE_SECONDS = float(os.getenv("CART_SAVE_DEBOUNCE_SECONDS", 0.5))
#silniki koszykow w pamieci (zaznaczenie, pending delete)
CART_SESSION_MAX = int(os.getenv("CART_SESSION_MAX", 1000))
CART_SESSION_TTL_SECONDS = float(os.getenv("CART_SESSION_TTL_SECONDS", 3600))

CATALOG_INITIAL_VISIBLE = int(os.getenv("CATALOG_INITIAL_VISIBLE", 10))
CATALOG_PAGE_SIZE = int(os.getenv("CATALOG_PAGE_SIZE", 10))
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", 5))

#admin + sesja
JWT_SECRET = os.getenv("JWT_SECRET", "default_super_secret_key_dont_use_in_prod")
ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "")
ADMIN_UPLOAD_PASSWORD = os.getenv("ADMIN_UPLOAD_PASSWORD", "")
SESSION_TTL_SECONDS = int(os.getenv("SESSION_TTL_SECONDS", 24 * 60 * 60))
SESSION_COOKIE_NAME = "admin_session"
SESSION_COOKIE_SECURE = _get_bool("SESSION_COOKIE_SECURE", False)

WHATSAPP_NUMBER = os.getenv("WHATSAPP_NUMBER", "6281388883983")

STEAM_ID = os.getenv("STEAM_ID", "76561198329596689")
STEAM_APP_ID = int(os.getenv("STEAM_APP_ID", 570))
STEAM_CONTEXT_ID = int(os.getenv("STEAM_CONTEXT_ID", 2))
STEAM_PROFILE_URL = os.getenv(
    "STEAM_PROFILE_URL", "https://steamcommunity.com/id/GetRestSTORE"
)

CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://redis:6379/1")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", "redis://redis:6379/2")
CELERY_TASK_ALWAYS_EAGER = _get_bool("CELERY_TASK_ALWAYS_EAGER", False)
