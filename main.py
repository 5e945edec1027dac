"""
Authentication service — application entry point.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.auth import router as auth_router
from api.auth import session_router
from api.middleware import register_exception_handlers, register_middleware
from api.routes import router as api_router
from auth.evidence import build_evidence_extractor
from auth.password import PasswordHasher
from auth.service import AuthService
from auth.sessions import build_session_store, run_session_sweeper
from config.settings import DEFAULT_SESSION_SECRET, Settings, config
from database.session import build_engine, build_session_factory, create_schema

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    stream=sys.stdout,
)
for _noisy in ("aiosqlite", "sqlalchemy.engine", "httpx", "httpcore"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or config
    policy = settings.session_policy()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.session_secret == DEFAULT_SESSION_SECRET and not settings.debug:
            logger.warning(
                "SESSION_SECRET is the built-in default; session cookies can be forged. "
                "Set SESSION_SECRET before deploying."
            )
        engine = build_engine(settings.database_url, echo=settings.debug)
        await create_schema(engine)

        store = build_session_store(policy, engine)
        app.state.settings = settings
        app.state.engine = engine
        app.state.session_factory = build_session_factory(engine)
        app.state.evidence_extractor = build_evidence_extractor(settings.auth_strategy, policy)
        app.state.auth_service = AuthService(
            PasswordHasher(rounds=settings.bcrypt_rounds),
            store,
            issue_sessions=settings.auth_strategy == "session",
            session_on_register=settings.session_on_register,
        )

        sweeper = None
        if settings.auth_strategy == "session":
            sweeper = asyncio.create_task(
                run_session_sweeper(store, policy.sweep_interval_seconds)
            )
        logger.info(
            "Auth strategy=%s  session backing=%s  cookie=%s  max_age=%ss",
            settings.auth_strategy, policy.backing, policy.cookie_name, policy.max_age_seconds,
        )
        logger.info("Application ready to accept requests.")
        try:
            yield
        finally:
            if sweeper is not None:
                sweeper.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await sweeper
            await engine.dispose()

    app = FastAPI(
        title="Authentication Service",
        version="1.0.0",
        description="Register, login and session-gated user listing.",
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_middleware(app)
    register_exception_handlers(app)

    # Routes
    app.include_router(api_router)
    app.include_router(auth_router, prefix="/api")
    if settings.auth_strategy == "session":
        app.include_router(session_router, prefix="/api")

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )
