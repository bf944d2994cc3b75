"""
FastAPI application for bulk import/export.

Serve with `textile-ops serve` or `uvicorn textile_ops.api.app:app`.
"""

from __future__ import annotations

from fastapi import FastAPI

from textile_ops.api.routers.bulk import router as bulk_router


def create_app() -> FastAPI:
    app = FastAPI(title="textile-ops", summary="Bulk CSV import/export for ledgers, users, products and inventory.")
    app.include_router(bulk_router)

    @app.get("/health", tags=["health"])
    def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
