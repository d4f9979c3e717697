import os
from dotenv import load_dotenv

# Loads the .env file so os.getenv can find the settings below
load_dotenv()


def _get_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# --- Database ---
DATABASE_URL = os.getenv("DATABASE_URL")

if DATABASE_URL is None:
    raise ValueError("DATABASE_URL is not set in the environment. Please create a .env file.")

DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "0"))
DB_POOL_TIMEOUT = float(os.getenv("DB_POOL_TIMEOUT", "10"))

# --- Media intake ---
UPLOAD_DIR = os.getenv("UPLOAD_DIR", os.path.join("public", "uploads"))
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))  # 5 MiB
# Whole multipart body; leaves room for the text fields around the photo
MAX_REQUEST_BYTES = int(os.getenv("MAX_REQUEST_BYTES", str(MAX_UPLOAD_BYTES + 1024 * 1024)))

# --- Report lifecycle ---
CASE_ID_MAX_ATTEMPTS = int(os.getenv("CASE_ID_MAX_ATTEMPTS", "5"))
STRICT_STATUS_TRANSITIONS = _get_bool("STRICT_STATUS_TRANSITIONS")

# --- Admin tokens ---
SECRET_KEY = os.getenv("SECRET_KEY", "super_secret_jwt_key")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))  # 24 hours

# --- HTTP ---
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",")
    if origin.strip()
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
