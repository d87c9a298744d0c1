from __future__ import annotations

from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from api.routes import sessions as session_routes
from api.services.sessions import DEFAULT_REPORTS_DIR, SessionRegistry


def create_app(reports_dir: Optional[Path] = None) -> FastAPI:
    app = FastAPI(
        title="Bar Path Rep Tracking API",
        description="REST API wrapping barline session tracking and CSV reporting.",
        version="0.1.0",
    )
    app.state.registry = SessionRegistry(reports_dir or DEFAULT_REPORTS_DIR)
    app.include_router(session_routes.router)

    @app.get("/", include_in_schema=False)
    async def redirect_to_docs() -> RedirectResponse:
        return RedirectResponse(url="/docs")

    return app


app = create_app()
