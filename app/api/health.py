from fastapi import APIRouter
from app.core.config import settings
import os
import time

router = APIRouter()

def _directory_status(path) -> dict:
    return {
        "exists": path.exists(),
        "writable": os.access(path, os.W_OK)
    }

@router.get("/health")
async def health_check():
    """Health check endpoint for production monitoring"""

    start_time = time.time()

    storage = {
        "chats": _directory_status(settings.CHAT_DATA_DIR),
        "ai_companies": _directory_status(settings.COMPANY_DATA_DIR)
    }
    storage_ok = all(item["exists"] and item["writable"] for item in storage.values())

    response_time = round((time.time() - start_time) * 1000, 2)  # ms

    return {
        "status": "ok" if storage_ok else "error",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "timestamp": int(time.time()),
        "response_time_ms": response_time,
        "storage": storage,
        "services": {
            "api": "ok",
            "chats": "ok" if storage_ok else "error"
        }
    }
