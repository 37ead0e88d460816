from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from querydrift.api.routes_schedule import router as schedule_router
from querydrift.api.routes_versions import router as versions_router
from querydrift.config.settings import settings

app = FastAPI(title="querydrift")

# Local dev CORS (same-origin in production)
cors_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)

# API routes under /api
app.include_router(versions_router, prefix="/api")
app.include_router(schedule_router, prefix="/api")


@app.get("/api/health")
def health() -> dict:
    root = settings.automation_dir
    return {"status": "ok", "automation_dir": root}
