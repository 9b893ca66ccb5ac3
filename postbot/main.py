"""FastAPI app entrypoint."""

import logging
from datetime import datetime, timezone
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from postbot.api.v1 import api_router
from postbot.core.config import get_settings
from postbot.db import session as db_session

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Postbot",
    description="Publishing pipeline for Telegram channels: AI-generated post queues and channel mirroring",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

@app.on_event("startup")
async def startup_event():
    """Initialize the database engine; create tables when AUTO_CREATE_TABLES is set."""
    settings = get_settings()
    db_session.init_db()
    if settings.AUTO_CREATE_TABLES:
        db_session.create_tables()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")

@app.get("/health")
def health_check():
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "postbot"
    }

@app.get("/health/live")
def liveness_check():
    """Kubernetes liveness probe endpoint."""
    return {"status": "alive"}

@app.get("/health/ready")
def readiness_check():
    """Kubernetes readiness probe endpoint; checks database connectivity."""
    try:
        db = db_session.get_db_session()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "not ready", "database": str(e)})
    return {"status": "ready"}
