import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from backend.config import Settings
from backend.live.registry import LiveLocationRegistry
from backend.routers import admin, auth, driver, tracking
from backend.utils.data_manager import UserStore
from backend.utils.logging import setup_logging
from backend.utils.security import hash_password

logger = logging.getLogger(__name__)


def ensure_admin_user(app: FastAPI):
    settings = app.state.settings
    if not (settings.admin_email and settings.admin_password):
        return
    users = app.state.users
    if users.find_by_email(settings.admin_email):
        return
    users.create(
        name="Administrator",
        email=settings.admin_email,
        university_id=f"admin:{settings.admin_email}",
        password_hash=hash_password(settings.admin_password),
        role="admin",
    )
    logger.info("Bootstrapped admin account %s", settings.admin_email)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level)

    app = FastAPI(title="Campus Bus Tracking API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.users = UserStore(settings.data_dir)
    app.state.registry = LiveLocationRegistry(queue_size=settings.observer_queue_size)
    ensure_admin_user(app)

    app.include_router(auth.router, prefix="/api/auth")
    app.include_router(driver.router, prefix="/api/location")
    app.include_router(tracking.router)
    app.include_router(admin.router, prefix="/api/admin")

    @app.get("/", tags=["Root"])
    async def read_root():
        return {"message": "Welcome to the Campus Bus Tracking API"}

    if settings.frontend_dir and settings.frontend_dir.is_dir():
        app.mount("/app", StaticFiles(directory=settings.frontend_dir, html=True), name="frontend")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
