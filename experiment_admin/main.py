"""Main FastAPI application.

Creates the app, sets up logging and plugs the routers in.
"""
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from experiment_admin.config import settings
from experiment_admin.database import init_db
from experiment_admin.routers import experiments, variants, assignments, users

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Experiment Admin API",
    description="API for managing experiments, variants and sticky user assignments",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(experiments.router)
app.include_router(variants.router)
app.include_router(assignments.router)
app.include_router(users.router)


@app.on_event("startup")
async def startup_event():
    """Initialize database on startup (create tables etc)."""
    init_db()
    logger.info("Database initialized")


@app.get("/")
def root():
    """Just a basic root endpoint."""
    return {"status": "ok", "message": "Experiment Admin API is running"}


@app.get("/health")
def health():
    """Health check endpoint"""
    return {"status": "healthy"}


def run():
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
