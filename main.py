from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn
from motor.motor_asyncio import AsyncIOMotorClient
from beanie import init_beanie

from config import (
    APP_TITLE, APP_DESCRIPTION, APP_VERSION,
    CORS_ORIGINS, DATABASE_NAME, DATABASE_URL, PORT,
)
from models import Admin, Campus, Pin
from routers import admin, campuses, navigation, pins
from utils.logger import get_logger

logger = get_logger(__name__)

app = FastAPI(
    title=APP_TITLE,
    description=APP_DESCRIPTION,
    version=APP_VERSION
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    try:
        client = AsyncIOMotorClient(DATABASE_URL)
        await init_beanie(
            database=client[DATABASE_NAME],
            document_models=[Campus, Pin, Admin]
        )
        logger.info("Database connected successfully")
    except Exception:
        logger.exception("Database connection failed, database operations will fail")


# Health check endpoint (must be before other routes for priority)
@app.get("/health")
async def health_check():
    return {"status": "healthy", "message": "Campus Navigation API is running"}


@app.get("/")
async def root():
    return {"message": APP_TITLE, "version": APP_VERSION, "status": "online"}


# Include routers
app.include_router(pins.router, prefix="/pins", tags=["pins"])
app.include_router(campuses.router, prefix="/campuses", tags=["campuses"])
app.include_router(navigation.router, prefix="/navigation", tags=["navigation"])
app.include_router(admin.router, prefix="/admin", tags=["admin"])


def run():
    """Entry point for the `campus-nav-api` console script"""
    uvicorn.run("main:app", host="0.0.0.0", port=PORT)


if __name__ == "__main__":
    run()
