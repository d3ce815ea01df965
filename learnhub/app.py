"""FastAPI application serving assignments, attempts and course progress."""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from learnhub.database import init_db
from learnhub.logging_setup import setup_console_logging
from learnhub.routes import assignments, attempts, progress

setup_console_logging()

app = FastAPI(title="LearnHub Progress API")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# Startup events
@app.on_event("startup")
def startup_events() -> None:
    """Create database tables on startup."""
    init_db()


@app.get("/api/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


# Include routers
app.include_router(assignments.router)
app.include_router(attempts.router)
app.include_router(progress.router)
