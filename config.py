import os

from dotenv import load_dotenv

load_dotenv()

# MongoDB
DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "campus_navigation")

# JWT (tokens are issued by the auth service, this API only verifies them)
SECRET_KEY = os.getenv("SECRET_KEY", "change-me-in-production")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

# Neighbor updates retry this many times on a version conflict
EDGE_UPDATE_MAX_RETRIES = int(os.getenv("EDGE_UPDATE_MAX_RETRIES", 3))

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

PORT = int(os.getenv("PORT", 8000))

APP_TITLE = "Campus Navigation API"
APP_DESCRIPTION = "Pins, campuses and pathfinding for the campus navigation app"
APP_VERSION = "1.0.0"
