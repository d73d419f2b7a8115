import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from fastapi.staticfiles import StaticFiles

from .background import drain
from .database import init_db, make_engine, make_session_maker
from .encryption import KeyCipher
from .errors import register_error_handlers
from .routers import assets, assistant, chapters, projects
from .routers import settings as settings_router
from .schemas import UserCreate, UserRead, UserUpdate
from .settings.config import Settings, get_settings
from .storage import ObjectStorage
from .users import auth_backend, fastapi_users

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI):
    await init_db(app.state.engine, create_all=app.state.settings.RUN_DB_CREATE_ALL)
    yield
    await drain()
    await app.state.engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(title="Sharebook", lifespan=_lifespan)

    # ----------------------
    # Shared state
    # ----------------------
    app.state.settings = settings
    app.state.engine = make_engine(settings.async_database_url())
    app.state.session_maker = make_session_maker(app.state.engine)
    app.state.storage = ObjectStorage(settings.STORAGE_ROOT, settings.STORAGE_PUBLIC_URL, settings.MAX_UPLOAD_MB)
    app.state.cipher = KeyCipher.from_settings(settings)
    app.state.llm_transport = None
    app.state.cipher.warn_if_unconfigured()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_origins_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    # uploaded covers, assets and exports
    if settings.STORAGE_PUBLIC_URL.startswith("/"):
        app.mount(
            settings.STORAGE_PUBLIC_URL.rstrip("/"),
            StaticFiles(directory=settings.STORAGE_ROOT),
            name="storage",
        )

    # ----------------------
    # Route Includes
    # ----------------------
    app.include_router(projects.router)
    app.include_router(chapters.router)
    app.include_router(assets.router)
    app.include_router(settings_router.router)
    app.include_router(assistant.router)

    # Authentication Routes
    app.include_router(fastapi_users.get_auth_router(auth_backend), prefix="/auth/jwt", tags=["auth"])
    app.include_router(fastapi_users.get_register_router(UserRead, UserCreate), prefix="/auth", tags=["auth"])
    app.include_router(fastapi_users.get_reset_password_router(), prefix="/auth", tags=["auth"])
    app.include_router(fastapi_users.get_users_router(UserRead, UserUpdate), prefix="/users", tags=["users"])

    @app.get("/", include_in_schema=False)
    async def root_redirect():
        return RedirectResponse(url="/api/explore", status_code=303)

    return app


app = create_app()
