"""FastAPI backend for the ProMaallem home-services marketplace.

This module is a thin **presentation layer**.  All business logic lives in
the ``application.use_cases`` package so it can be tested and reused
independently of any HTTP framework.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from promaallem import __version__
from promaallem.application.use_cases import (
    AccountsUseCase,
    DiagnosisUseCase,
    IdentityResolver,
    SosBookingUseCase,
    TriageUseCase,
)
from promaallem.config import Settings, get_settings, resolve_llm_provider
from promaallem.domain.protocols import ILanguageModel, IMarketplaceStore
from promaallem.infrastructure.llm import PydanticAIChatModel, create_chat_agent
from promaallem.infrastructure.store import SQLiteMarketplaceStore
from promaallem.infrastructure.tokens import TokenService
from promaallem.logging_config import setup_logging
from promaallem.presentation.errors import register_error_handlers
from promaallem.presentation.routes import ai, auth, bookings, catalog
from promaallem.telemetry import is_observability_active, setup_telemetry


def create_app(
    settings: Settings | None = None,
    *,
    store: IMarketplaceStore | None = None,
    llm: ILanguageModel | None = None,
) -> FastAPI:
    """Build the application.

    Args:
        settings: Settings override (defaults to ``get_settings()``).
        store: Store override; a SQLite store at ``settings.database_path``
            is created otherwise.
        llm: Language-model override; otherwise a PydanticAI gateway for the
            provider detected from ``DEEPSEEK_API_KEY``.
    """
    s = settings or get_settings()
    setup_logging(level=s.log_level, json=s.log_json)

    # -----------------------------------------------------------------------
    # Lifespan: initialise shared resources once at startup
    # -----------------------------------------------------------------------

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Set up and tear down collaborators around the application lifetime."""
        s.validate_runtime()

        marketplace = store
        if marketplace is None:
            sqlite_store = SQLiteMarketplaceStore(db_path=s.database_path)
            await sqlite_store.connect()
            if s.seed_catalog:
                await sqlite_store.seed_services()
            marketplace = sqlite_store
        else:
            await marketplace.connect()

        model = llm
        if model is None:
            provider = resolve_llm_provider(s.deepseek_api_key)
            logger.info("LLM provider: {} | model={}", provider.provider, provider.model_id)
            model = PydanticAIChatModel(
                create_chat_agent(provider, instrument=is_observability_active(s)),
                model_name=provider.model_id,
                timeout_seconds=s.llm_timeout_seconds,
            )

        tokens = TokenService(secret=s.jwt_secret, expiry_hours=s.jwt_expiry_hours)

        # Wire up the use cases with all their dependencies
        app.state.settings = s
        app.state.store = marketplace
        app.state.identity_resolver = IdentityResolver(tokens)
        app.state.accounts_uc = AccountsUseCase(marketplace, tokens, default_city=s.default_city)
        app.state.sos_uc = SosBookingUseCase(marketplace)
        app.state.triage_uc = TriageUseCase(model, marketplace, default_city=s.default_city)
        app.state.diagnosis_uc = DiagnosisUseCase(model)

        logger.info("Application startup complete")
        yield

        await marketplace.close()
        logger.info("Application shutdown complete")

    # -----------------------------------------------------------------------
    # Application
    # -----------------------------------------------------------------------

    app = FastAPI(
        title="ProMaallem API",
        description="Service-request intake, maallem matching and AI triage.",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=s.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    for module in (catalog, auth, bookings, ai):
        app.include_router(module.router)

    # Instrument FastAPI with observability (no-op when OBSERVABILITY=off)
    setup_telemetry(app, s)
    return app


app = create_app()


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run("promaallem.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
