import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from database import connect_db, close_db

# Routers
from routers import notifications

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    await connect_db()
    logger.info("Notification API started")
    yield
    # Shutdown
    await close_db()
    logger.info("Notification API stopped")


app = FastAPI(
    title="Park Pickups Notifications",
    description="Rendu des templates et envoi des notifications email / SMS",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.DEBUG else ["https://enchantedparkpickups.com"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers (clé API admin)
app.include_router(notifications.router, prefix="/api/notifications", tags=["Notifications"])


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok", "app": "notifications", "env": settings.APP_ENV, "version": "1.0.0"}
