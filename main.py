"""
chatsync Backend - FastAPI Application
Conversation ingestion and query service for a real-time messaging source
"""
import logging
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from chatsync.config import configure_logging, get_settings
from chatsync.database import init_db
from chatsync.exceptions import StorageUnavailableError
from chatsync.routers import chat, ingest

settings = get_settings()
configure_logging(settings)
logger = logging.getLogger("chatsync")

# Create database tables
init_db()

app = FastAPI(
    title="chatsync API",
    description="Idempotent ingestion and search for synced chats and messages",
    version="0.1.0",
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StorageUnavailableError)
async def storage_unavailable_handler(request: Request, exc: StorageUnavailableError):
    logger.error("Storage unavailable on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Storage unavailable"})


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "chatsync-api"}


app.include_router(chat.router, prefix="/api", tags=["chats"])
app.include_router(ingest.router, prefix="/api", tags=["ingest"])

# Stored media blobs
os.makedirs(settings.media_dir, exist_ok=True)
app.mount(settings.media_url_prefix, StaticFiles(directory=settings.media_dir), name="media")
