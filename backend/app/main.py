"""eCards - personalized greeting card API."""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.logging_config import setup_logging

settings = get_settings()
setup_logging(settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup: create tables, seed templates, start background jobs
    from app.api.deps import get_artwork_store, get_notification_sender
    from app.database import Base, engine, SessionLocal
    from app.services.scheduler import start_background_tasks
    from app.services.template_loader import load_premade_templates

    # Import all models so they're registered with Base
    from app import models  # noqa: F401

    # Create tables
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        load_premade_templates(db, settings.premade_templates_dir)
    finally:
        db.close()

    background = None
    if settings.enable_background_tasks:
        background = start_background_tasks(settings, get_artwork_store(), get_notification_sender())

    yield

    # Shutdown: let in-flight sweeps and delivery passes finish
    if background is not None:
        await background.stop()


app = FastAPI(
    title=settings.app_name,
    description="Send personalized eCards with scheduled delivery",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "app": settings.app_name}


# Import and include routers
from app.api import admin, ecards, templates  # noqa: E402

app.include_router(ecards.router, prefix="/api")
app.include_router(templates.router, prefix="/api")
app.include_router(admin.router, prefix="/api")
