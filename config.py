import os
from dotenv import load_dotenv

# Load environment variables from .env
load_dotenv()

MONGO_URL = os.getenv("MONGO_URL", "mongodb://localhost:27017")
DB_NAME = os.getenv("DB_NAME", "bookfinderdb")

SECRET_KEY = os.getenv("SECRET_KEY", "change-me-in-production")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_DAYS = 30

OPEN_LIBRARY_API = os.getenv("OPEN_LIBRARY_API", "https://openlibrary.org")
OPEN_LIBRARY_COVERS = os.getenv("OPEN_LIBRARY_COVERS", "https://covers.openlibrary.org")
CATALOG_TIMEOUT = float(os.getenv("CATALOG_TIMEOUT", "30"))  # search and details
SUGGEST_TIMEOUT = float(os.getenv("SUGGEST_TIMEOUT", "10"))  # suggestions, recommendations, trending

CLIENT_URL = os.getenv("CLIENT_URL")
FRONTEND_URL = os.getenv("FRONTEND_URL", CLIENT_URL or "http://localhost:5173")

EMAIL_HOST = os.getenv("EMAIL_HOST")
EMAIL_PORT = int(os.getenv("EMAIL_PORT", "587"))
EMAIL_SECURE = os.getenv("EMAIL_SECURE", "false").lower() == "true"
EMAIL_USER = os.getenv("EMAIL_USER")
EMAIL_PASS = os.getenv("EMAIL_PASS")
RESET_TOKEN_EXPIRE_MINUTES = 60

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
