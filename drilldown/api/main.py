"""
FastAPI application entry-point.
"""
from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from drilldown.api.routers import catalog, drill
from drilldown.core.config import get_settings

app = FastAPI(
    title="Drill-Down Analytics Engine",
    version="0.1.0",
    description="Hierarchical drill-down aggregation over retail sales data",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(drill.router, prefix="/drill", tags=["Drill"])
app.include_router(catalog.router, tags=["Catalog"])


@app.get("/health")
def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
