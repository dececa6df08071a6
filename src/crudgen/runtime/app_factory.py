"""
FastAPI application factory.

Mounts a single catch-all route under the API prefix that converts the
Starlette request into an ``ApiRequest``, hands it to the Dispatcher and
serializes the result. This is the calling layer: success status codes,
404 for unmatched paths and missing records, and error mapping (via
``exception_handlers``) all live here rather than in the engine.
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response

from crudgen.runtime.access_control import AuthBackend
from crudgen.runtime.api_request import ApiRequest
from crudgen.runtime.config import EngineSettings
from crudgen.runtime.dispatcher import DispatchResult, Dispatcher, build_dispatcher
from crudgen.runtime.errors import ValidationError
from crudgen.runtime.exception_handlers import error_body, register_exception_handlers
from crudgen.runtime.logging import get_logger
from crudgen.runtime.persistence import Persistence
from crudgen.runtime.registry import ModelRegistry
from crudgen.runtime.request_context import (
    REQUEST_ID_HEADER,
    ActivitySink,
    RequestContext,
    generate_request_id,
)
from crudgen.runtime.route_table import RouteKind

logger = get_logger("http")

_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]
_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


def _query_dict(request: Request) -> dict[str, Any]:
    """Query parameters; repeated keys become lists."""
    query: dict[str, Any] = {}
    for key, value in request.query_params.multi_items():
        if key in query:
            existing = query[key]
            query[key] = [*existing, value] if isinstance(existing, list) else [existing, value]
        else:
            query[key] = value
    return query


async def _parse_body(request: Request) -> Any:
    """Parse a JSON or form body. Multipart bodies are left for custom handlers."""
    if request.method not in _BODY_METHODS:
        return None
    content_type = (request.headers.get("content-type") or "").lower()
    if "multipart/form-data" in content_type:
        return None
    if "application/x-www-form-urlencoded" in content_type:
        form = await request.form()
        return dict(form)
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError([{"path": [], "message": "Malformed JSON body"}]) from None


def _to_response(result: DispatchResult, request_id: str) -> Response:
    headers = {"X-Request-ID": request_id}
    value = result.value
    route = result.match.route

    if isinstance(value, Response):
        value.headers.setdefault("X-Request-ID", request_id)
        return value

    if route.kind == RouteKind.GET and value is None:
        return JSONResponse(
            status_code=404,
            content={"error": f"{route.model} not found"},
            headers=headers,
        )

    status_code = 201 if route.kind == RouteKind.CREATE else 200
    return JSONResponse(status_code=status_code, content=jsonable_encoder(value), headers=headers)


def create_app(
    registry: ModelRegistry,
    persistence: Persistence,
    *,
    auth: AuthBackend | None = None,
    settings: EngineSettings | None = None,
    activity_sink: ActivitySink | None = None,
    title: str = "crudgen API",
) -> FastAPI:
    """
    Build a FastAPI application serving every registered model.

    Example:
        registry = ModelRegistry([ModelConfig(name="widget", permissions=...)])
        app = create_app(registry, InMemoryPersistence(), auth=my_auth)
    """
    settings = settings or EngineSettings()
    dispatcher = build_dispatcher(
        registry,
        persistence,
        auth=auth,
        settings=settings,
        activity_sink=activity_sink,
    )

    app = FastAPI(title=title, debug=settings.debug)
    app.state.dispatcher = dispatcher
    app.state.settings = settings
    register_exception_handlers(app, debug=settings.debug)

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next: Any) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()
        request.state.request_id = request_id
        response: Response = await call_next(request)
        response.headers.setdefault("X-Request-ID", request_id)
        return response

    prefix = settings.api_prefix.rstrip("/")

    @app.api_route(prefix + "/{path:path}", methods=_METHODS, include_in_schema=False)
    async def dispatch_route(request: Request) -> Response:
        d: Dispatcher = request.app.state.dispatcher
        request_id: str = request.state.request_id
        client_ip = request.client.host if request.client else None

        api_request = ApiRequest(
            method=request.method,
            path=request.url.path,
            query=_query_dict(request),
            headers=dict(request.headers),
            body=await _parse_body(request),
            client_ip=client_ip,
            raw=request,
        )
        api_request.context = RequestContext(
            request_id=request_id,
            sink=activity_sink,
            ip_address=client_ip,
            user_agent=request.headers.get("user-agent"),
        )

        result = await d.dispatch(api_request)
        if result is None:
            return JSONResponse(
                status_code=404,
                content=error_body("Not Found", f"No route for {request.method} {request.url.path}"),
            )
        return _to_response(result, request_id)

    logger.info("API ready with %d routes under %s", len(dispatcher.routes()), prefix or "/")
    return app
