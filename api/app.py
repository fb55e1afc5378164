"""
Semantic Search HTTP API

FastAPI application exposing the search pipeline:
- POST /api/search/semantic          run a search
- GET  /api/search/semantic          describe the API
- GET  /api/search/semantic/health   aggregated dependency health

The SemanticSearchService is built in the application lifespan and closed
at shutdown. If it cannot be built (for example without an embedding API
key) the app still starts and search requests return CONFIGURATION_ERROR.
"""

import json
import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Callable, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from catalog_search_exceptions import ConfigurationError
from config.settings import CatalogSearchSettings, load_settings
from semantic_search.core.service import SemanticSearchService
from semantic_search.core.validation import RequestValidator
from .errors import ErrorCode, invalid_json, to_api_error
from .responses import RequestContext, error_response, success_response

logger = logging.getLogger(__name__)

SEARCH_PATH = "/api/search/semantic"
CONFIG_PATH_ENV = "CATALOG_CONFIG_PATH"


def configure_logging(level: str) -> None:
    """Apply the configured log level process-wide."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def create_app(
    settings: Optional[CatalogSearchSettings] = None,
    service: Optional[SemanticSearchService] = None,
    service_factory: Optional[Callable[[CatalogSearchSettings], SemanticSearchService]] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Settings to use; loaded from CATALOG_CONFIG_PATH and the
            environment when omitted
        service: Prebuilt service; the app then neither builds nor closes one
        service_factory: Builds the service from settings; defaults to
            SemanticSearchService.from_settings

    Returns:
        The configured application
    """
    factory = service_factory or SemanticSearchService.from_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        resolved = settings or load_settings(os.getenv(CONFIG_PATH_ENV))
        configure_logging(resolved.api.log_level)
        app.state.settings = resolved
        app.state.validator = RequestValidator(resolved.search)
        app.state.config_error = None
        owned = service is None
        if service is not None:
            app.state.service = service
        else:
            try:
                app.state.service = factory(resolved)
            except ConfigurationError as e:
                logger.error(f"Search service is not configured: {e}")
                app.state.service = None
                app.state.config_error = e
        yield
        if owned and app.state.service is not None:
            await app.state.service.close()

    app = FastAPI(
        title="Catalog Semantic Search",
        description="Hybrid semantic and keyword search over the AI-services catalog",
        lifespan=lifespan,
    )

    @app.post(SEARCH_PATH)
    async def search(request: Request):
        """Validate the body, run the search and wrap the result in an envelope."""
        state = request.app.state
        context = RequestContext(state.settings.api.version)
        debug = state.settings.api.debug

        try:
            body: Any = json.loads(await request.body())
        except ValueError as e:
            logger.info(f"Request {context.request_id} rejected: invalid JSON")
            return error_response(context, invalid_json(e), debug)

        try:
            query = state.validator.validate(body)
            if state.service is None:
                raise state.config_error or ConfigurationError("Search service is not configured")
            response = await state.service.execute(query, request_id=context.request_id)
        except Exception as e:
            error = to_api_error(e)
            if error.status_code >= 500:
                logger.error(
                    f"Request {context.request_id} failed with {error.code}: {e}",
                    exc_info=error.code == ErrorCode.INTERNAL_ERROR,
                )
            else:
                logger.info(f"Request {context.request_id} rejected: {error.message}")
            return error_response(context, error, debug)

        return success_response(context, response.to_dict())

    @app.get(SEARCH_PATH)
    async def describe(request: Request):
        """Describe the search API."""
        state = request.app.state
        return {
            "name": "Semantic Search API",
            "version": state.settings.api.version,
            "endpoints": {
                f"POST {SEARCH_PATH}": "Run a hybrid semantic search",
                f"GET {SEARCH_PATH}/health": "Aggregated dependency health",
            },
            "request": RequestValidator.describe(),
            "errorCodes": {
                "VALIDATION_ERROR": 400,
                "INVALID_JSON": 400,
                "CONFIGURATION_ERROR": 500,
                "SEARCH_FAILED": 500,
                "INTERNAL_ERROR": 500,
            },
        }

    @app.get(f"{SEARCH_PATH}/health")
    async def health(request: Request):
        """Aggregated health; 200 when healthy or degraded, 503 otherwise."""
        state = request.app.state
        if state.service is None:
            body = {
                "healthy": False,
                "status": "unhealthy",
                "error": {"code": "CONFIGURATION_ERROR", "message": "Search service is not configured"},
            }
            return JSONResponse(content=body, status_code=503)

        report = await state.service.health_check()
        report["version"] = state.settings.api.version
        return JSONResponse(
            content=jsonable_encoder(report),
            status_code=200 if report["healthy"] else 503,
        )

    return app


def run_server(host: str = "127.0.0.1", port: int = 8000):
    """Run the API with uvicorn."""
    import uvicorn

    uvicorn.run(create_app(), host=host, port=port)


if __name__ == "__main__":
    run_server()
