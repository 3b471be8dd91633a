"""ASGI application exposing the provider registry over HTTP.

Routes:
    GET  /health                      liveness and provider count
    GET  /metrics                     Prometheus exposition
    GET  /providers                   per-provider statistics
    GET  /providers/{provider}/fields field schema and filter operators
    POST /providers/{provider}/search run a query against one provider
    POST /search                      fan a query out to several providers
    GET  /suggest?q=&provider=        query suggestions

Usage:
    keeper-search
    # or
    python -m keeper_search.app
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import Any

from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from keeper_search.adapters.notebooks import build_notebooks_provider
from keeper_search.adapters.tasks import build_tasks_provider
from keeper_search.config import Settings
from keeper_search.domain.search import SearchQuery, SearchResults
from keeper_search.exceptions import (
    IndexUnavailableError,
    InvalidFilterOperatorError,
    MalformedRegexError,
    ProviderNotFoundError,
)
from keeper_search.observability.logging import configure_logging
from keeper_search.observability.metrics import get_metrics, get_metrics_content_type, init_metrics
from keeper_search.observability.tracing import init_tracing
from keeper_search.registry import SearchProviderRegistry
from keeper_search.search.pipeline import FILTER_OPERATORS


logger = logging.getLogger(__name__)


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"success": False, "message": message}, status_code=status_code)


def _results_payload(results: SearchResults) -> dict[str, Any]:
    return results.model_dump(mode="json")


async def _read_json(request: Request) -> dict[str, Any]:
    payload = await request.json()
    if not isinstance(payload, dict):
        raise ValueError("Request body must be a JSON object")
    return payload


def create_app(registry: SearchProviderRegistry, settings: Settings | None = None) -> Starlette:
    """Build the Starlette app around ``registry``; indexes are built on startup."""
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(_: Starlette):
        outcomes = await registry.refresh_all()
        logger.info("Startup index build finished: %s", outcomes)
        yield

    async def health(_: Request) -> JSONResponse:
        return JSONResponse(
            {
                "status": "healthy",
                "providers": registry.provider_ids(),
                "default_provider": registry.default_provider_id,
            }
        )

    async def metrics(_: Request) -> Response:
        return Response(content=get_metrics(), media_type=get_metrics_content_type())

    async def providers(_: Request) -> JSONResponse:
        return JSONResponse([stats.as_dict() for stats in registry.stats()])

    async def provider_fields(request: Request) -> JSONResponse:
        provider_id = request.path_params["provider"]
        if registry.get_provider(provider_id) is None:
            return _error(f"Search provider '{provider_id}' not found", 404)
        return JSONResponse(
            {
                "provider": provider_id,
                "fields": [field.model_dump(mode="json") for field in registry.provider_fields(provider_id)],
                "operators": sorted(FILTER_OPERATORS),
            }
        )

    async def provider_search(request: Request) -> JSONResponse:
        provider_id = request.path_params["provider"]
        try:
            query = SearchQuery.model_validate(await _read_json(request))
            results = await registry.search(query, provider_id)
        except ProviderNotFoundError as exc:
            return _error(str(exc), 404)
        except ValidationError as exc:
            return _error(f"Invalid query: {exc.error_count()} validation error(s)", 400)
        except (InvalidFilterOperatorError, MalformedRegexError) as exc:
            return _error(str(exc), 400)
        except IndexUnavailableError as exc:
            return _error(str(exc), 503)
        except ValueError as exc:
            return _error(f"Malformed request body: {exc}", 400)
        return JSONResponse(_results_payload(results))

    async def fan_out_search(request: Request) -> JSONResponse:
        try:
            payload = await _read_json(request)
            provider_ids = payload.pop("providers", None)
            if provider_ids is not None and not (
                isinstance(provider_ids, list) and all(isinstance(item, str) for item in provider_ids)
            ):
                raise ValueError("'providers' must be a list of provider ids")
            query = SearchQuery.model_validate(payload)
        except ValidationError as exc:
            return _error(f"Invalid query: {exc.error_count()} validation error(s)", 400)
        except ValueError as exc:
            return _error(f"Malformed request body: {exc}", 400)

        results = await registry.search_multiple(query, provider_ids)
        return JSONResponse({provider_id: _results_payload(result) for provider_id, result in results.items()})

    async def suggest(request: Request) -> JSONResponse:
        text = request.query_params.get("q", "")
        provider_id = request.query_params.get("provider") or None
        suggestions = await registry.suggest(text, provider_id)
        return JSONResponse({"query": text, "suggestions": suggestions})

    routes = [
        Route("/health", endpoint=health, methods=["GET"]),
        Route("/metrics", endpoint=metrics, methods=["GET"]),
        Route("/providers", endpoint=providers, methods=["GET"]),
        Route("/providers/{provider}/fields", endpoint=provider_fields, methods=["GET"]),
        Route("/providers/{provider}/search", endpoint=provider_search, methods=["POST"]),
        Route("/search", endpoint=fan_out_search, methods=["POST"]),
        Route("/suggest", endpoint=suggest, methods=["GET"]),
    ]

    app = Starlette(debug=settings.log_level.lower() == "debug", routes=routes, lifespan=lifespan)
    app.state.registry = registry
    app.state.settings = settings
    return app


def build_default_registry(settings: Settings) -> SearchProviderRegistry:
    """Registry with the tasks and notebooks providers over empty collections."""
    registry = SearchProviderRegistry(
        default_provider_id=settings.default_provider,
        suggestion_limit=settings.registry_suggestion_limit,
    )
    registry.register(build_tasks_provider(list, settings))
    registry.register(build_notebooks_provider(list, settings))
    return registry


def main() -> None:
    """Entry point for the standalone search server."""
    import uvicorn

    settings = Settings()
    configure_logging(
        settings.log_level,
        settings.json_logs,
        logger_levels={"keeper_search": settings.log_level},
    )
    init_tracing(service_name="keeper-search")
    init_metrics(service_name="keeper-search")

    app = create_app(build_default_registry(settings), settings)

    logger.info("Starting server on %s:%d", settings.host, settings.port)
    logger.info("Health check: http://%s:%d/health", settings.host, settings.port)

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
