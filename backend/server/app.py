"""
FastAPI app factory.

Responsibilities:
- Create and configure FastAPI app
- Set up middleware
- Select the provider adapter factory
- Register routes
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import AppConfig
from observability import logger
from session.gateway import AdapterFactory, openai_adapter_factory

from server.routes import register_routes


def create_app(
    config: AppConfig | None = None,
    adapter_factory: AdapterFactory | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    This is the app factory pattern that allows:
    - Testing with different configurations and fake providers
    - Environment-specific setup
    - ASGI server compatibility

    Raises:
        RuntimeError if no adapter factory is injected and OPENAI_API_KEY
        is not configured.
    """
    if config is None:
        config = AppConfig.load_from_env()

    logger.configure(enable_json=config.enable_json_logs)

    if adapter_factory is None:
        if not config.openai_api_key:
            raise RuntimeError("OPENAI_API_KEY environment variable not set")
        adapter_factory = openai_adapter_factory(config)

    app = FastAPI(title="Realtime Transcription Relay")

    app.state.config = config
    app.state.adapter_factory = adapter_factory

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # tighten later
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routes
    register_routes(app)

    return app
