from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api.errors import register_exception_handlers
from .api.routes import admin, auth, children, invitations, parents, users
from .core.logging import setup_logging
from .db import init_db


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    init_db()
    yield


def create_app(*, create_schema: bool = True) -> FastAPI:
    app = FastAPI(title="TaskReward API", version="0.1.0", lifespan=lifespan if create_schema else None)
    register_exception_handlers(app)
    app.include_router(auth.router, prefix="/auth", tags=["auth"])
    app.include_router(parents.router, prefix="/parents", tags=["parents"])
    app.include_router(children.router, prefix="/children", tags=["children"])
    app.include_router(invitations.router, prefix="/invitations", tags=["invitations"])
    app.include_router(users.router, prefix="/users", tags=["users"])
    app.include_router(admin.router, prefix="/admin", tags=["admin"])

    @app.get("/health", tags=["health"])
    def health():
        return {"status": "UP"}

    return app


app = create_app()
