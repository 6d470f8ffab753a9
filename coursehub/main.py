"""
CourseHub API - Main Application
Course CRUD, enrollment, reviews and certificates for the admin console
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from coursehub.config import Config
from coursehub.errors import register_error_handlers
from coursehub.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def create_app(store=None) -> FastAPI:
    """
    Create and configure the FastAPI application
    @param store: persistence object; a MongoCourseStore built from config when omitted
    @returns: FastAPI - configured application
    """
    setup_logging(Config.LOG_LEVEL)
    Config.validate()

    if store is None:
        from coursehub.courses.database import MongoCourseStore
        store = MongoCourseStore.from_config()

    app = FastAPI(title="CourseHub API")
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=Config.CORS_ORIGINS,
        allow_credentials=Config.CORS_ORIGINS != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"]
    )

    register_error_handlers(app)

    # ==================== ROUTER REGISTRATION ====================
    from coursehub.auth.auth_router import router as auth_router
    from coursehub.courses.course_router import router as course_router
    from coursehub.courses.certificate_router import router as certificate_router
    from coursehub.admin.admin_router import router as admin_router
    from coursehub.instructor.instructor_router import router as instructor_router
    from coursehub.system.health_router import router as health_router

    app.include_router(auth_router)
    app.include_router(course_router)
    app.include_router(certificate_router)
    app.include_router(admin_router)
    app.include_router(instructor_router)
    app.include_router(health_router)
    logger.info("✅ Routes registered")

    @app.on_event("startup")
    async def startup_event():
        await app.state.store.create_indexes()
        logger.info("🚀 CourseHub API started")

    @app.on_event("shutdown")
    async def shutdown_event():
        close = getattr(app.state.store, "close", None)
        if close:
            close()

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host=Config.HOST, port=Config.PORT)
