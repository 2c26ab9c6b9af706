"""FastAPI application factory."""

from fastapi import FastAPI

from vidstage.api.middleware import vidstage_error_handler
from vidstage.api.routes import download, process, status
from vidstage.models.errors import VidstageError


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="vidstage",
        description="Staged video editing pipeline over ffmpeg",
        version="0.1.0",
    )

    # Error handlers
    app.add_exception_handler(VidstageError, vidstage_error_handler)

    # Routes
    app.include_router(process.router)
    app.include_router(status.router)
    app.include_router(download.router)

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": "0.1.0"}

    return app


app = create_app()
