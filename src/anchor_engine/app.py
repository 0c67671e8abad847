"""FastAPI application factory for Anchor-Engine."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from anchor_engine.common.config import get_settings
from anchor_engine.common.logging import setup_logging
from anchor_engine.common.schemas import HealthResponse


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        from anchor_engine.deps import get_db
        db = get_db()
        await db.init()
        await db.create_all()
        yield
        # Shutdown
        await db.close()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(version=settings.api_version)

    # Mount routers
    from anchor_engine.anchors.router import router as anchors_router
    from anchor_engine.bulk.router import router as bulk_router
    from anchor_engine.verification.router import router as verification_router
    from anchor_engine.registry.router import router as registry_router
    from anchor_engine.audit.router import router as audit_router

    prefix = settings.api_prefix
    app.include_router(anchors_router, prefix=prefix, tags=["anchors"])
    app.include_router(bulk_router, prefix=prefix, tags=["bulk"])
    app.include_router(verification_router, prefix=prefix, tags=["verification"])
    app.include_router(registry_router, prefix=prefix, tags=["registry"])
    app.include_router(audit_router, prefix=prefix, tags=["audit"])

    return app
