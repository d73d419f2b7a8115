"""Account handling: fastapi-users with an integer-id user table, an httponly
cookie carrying a JWT, and the current-user dependencies routers rely on."""
import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi_users import FastAPIUsers
from fastapi_users.authentication import AuthenticationBackend, CookieTransport, JWTStrategy
from fastapi_users.db import SQLAlchemyUserDatabase
from fastapi_users.manager import BaseUserManager, IntegerIDMixin

from .database import get_db
from .models import User
from .services.user_settings import create_user_settings, get_user_settings
from .settings.config import settings

logger = logging.getLogger(__name__)

SESSION_COOKIE = "sharebook_session"
SESSION_LIFETIME_SECONDS = 3600 * 24 * 7

SECRET = (settings.SECRET or "").strip()
if not SECRET or SECRET == "CHANGE_ME_SECRET":
    raise RuntimeError("SECRET must be set to a strong value before the auth backend can start.")


class UserManager(IntegerIDMixin, BaseUserManager[User, int]):
    reset_password_token_secret = SECRET
    verification_token_secret = SECRET

    def __init__(self, user_db: SQLAlchemyUserDatabase, session):
        super().__init__(user_db)
        self.session = session

    async def on_after_register(self, user: User, request: Optional[Request] = None):
        # every author starts with the default reader preferences
        if await get_user_settings(self.session, user.id) is None:
            await create_user_settings(self.session, user.id)
            await self.session.commit()
        logger.info("Registered user %s", user.id)

    async def on_after_forgot_password(self, user: User, token: str, request: Optional[Request] = None):
        # delivery is left to the operator's mail relay; the token itself is never logged
        logger.info("Password reset requested for user %s", user.id)


async def get_user_manager(session=Depends(get_db)):
    yield UserManager(SQLAlchemyUserDatabase(session, User), session)


cookie_transport = CookieTransport(
    cookie_name=SESSION_COOKIE,
    cookie_max_age=SESSION_LIFETIME_SECONDS,
    cookie_secure=settings.COOKIE_SECURE,
    cookie_httponly=True,
    cookie_samesite="lax",
)


def get_jwt_strategy() -> JWTStrategy:
    return JWTStrategy(secret=SECRET, lifetime_seconds=SESSION_LIFETIME_SECONDS)


auth_backend = AuthenticationBackend(name="jwt", transport=cookie_transport, get_strategy=get_jwt_strategy)

fastapi_users = FastAPIUsers[User, int](get_user_manager, [auth_backend])

current_active_user = fastapi_users.current_user(active=True)
# None for anonymous visitors; public projects are readable without an account
current_optional_user = fastapi_users.current_user(active=True, optional=True)
