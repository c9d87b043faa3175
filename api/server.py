"""
Kite School Billboard API Server - REST API for the billboard UI.
"""
# ruff: noqa: B904, S104
# S104: Development server binding (guarded by __name__ check)

import logging
import os
from datetime import UTC, datetime

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import kiteschool
from api.billboard_router import router as billboard_router
from api.response_models import HealthResponse
from kiteschool import db as db_module
from kiteschool.observability import CorrelationIdMiddleware, configure_logging

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Kite School Billboard API",
    description="Teacher day timelines, conflict checks and lesson events",
    version=kiteschool.__version__,
)

# CORS_ORIGINS: comma-separated list, default allows all
cors_origins_env = os.getenv("CORS_ORIGINS", "*")
cors_origins = (
    ["*"] if cors_origins_env == "*" else [o.strip() for o in cors_origins_env.split(",")]
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)

app.include_router(billboard_router, prefix="/api")


@app.on_event("startup")
async def run_db_migrations_on_startup():
    """Converge the schema before serving."""
    try:
        result = db_module.run_startup_migrations()
        if result.get("tables_created"):
            logger.info("Startup created tables: %s", result["tables_created"])
    except Exception as e:
        logger.error("DB startup check failed: %s", e)
        raise


@app.get("/api/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC).isoformat(),
        version=kiteschool.__version__,
    )


def main(host: str = "127.0.0.1", port: int = 8420):
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main(host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "8420")))
