import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import argparse
import logging

from .core.config import settings
from .api.chats import router as chats_router
from .api.companies import router as companies_router
from .api.health import router as health_router

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format=settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info(f"Starting up {settings.APP_NAME}...")
    logger.info(f"Chat data directory: {settings.CHAT_DATA_DIR}")
    yield
    logger.info(f"Shutting down {settings.APP_NAME}...")

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="Multi-provider AI chat API with bounded conversation history",
    version=settings.APP_VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(chats_router, prefix="/api/organizations/{org_id}/chats", tags=["AI Chats"])
app.include_router(companies_router, prefix="/api/organizations/{org_id}/ai-companies", tags=["AI Companies"])
app.include_router(health_router, prefix="/api", tags=["Health"])

# Root route
@app.get("/", tags=["Root"])
async def root():
    return {
        "message": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "docs": "/docs"
    }

# Health check endpoint
@app.get("/health", tags=["Health"])
async def health():
    return {
        "status": "ok",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT
    }

if __name__ == "__main__":
    # Parse command line arguments
    parser = argparse.ArgumentParser(description=settings.APP_NAME)
    parser.add_argument("--port", type=int, default=8000, help="Port to run the server on")
    parser.add_argument("--host", type=str, default="0.0.0.0", help="Host to run the server on")

    args = parser.parse_args()

    # Run the application
    logger.info(f"Starting {settings.APP_NAME} on {args.host}:{args.port}")
    uvicorn.run("app.main:app", host=args.host, port=args.port, reload=settings.DEBUG)
