"""HTTP endpoints for reading from and writing to contracts through Ensis.

Each endpoint is its own FastAPI app so it can be deployed as a separate
serverless function. Both accept ``POST /<contract-address>/<function-name>``
and answer with JSON:

* any other method -> 405 ``{"error": "Method not allowed"}``
* any failure while serving a POST -> 400 ``{"error": "<message>"}``
"""

import json
import logging
from typing import Any, Callable

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ensis_gateway.config_manager import ConfigManager, get_config_manager
from ensis_gateway.exceptions import EnsisException, RequestError
from ensis_gateway.gateway import EnsisGateway
from ensis_gateway.logging_config import get_logger, log_with_context
from ensis_gateway.validators import parse_request_path

logger = get_logger(__name__)

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]

READ = "read"
WRITE = "write"


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def parse_json_body(body: str, default: Any) -> Any:
    """Parse a request body; an empty body yields default when one is given.

    Raises:
        RequestError: If the body is not valid JSON.
    """
    if not body.strip() and default is not None:
        return default
    try:
        return json.loads(body)
    except json.JSONDecodeError as e:
        raise RequestError(
            f"Invalid JSON body: {e.msg}", RequestError.ERR_INVALID_BODY
        ) from e


def serve_request(
    kind: str, path: str, body: str, config: ConfigManager
) -> dict[str, Any]:
    """Serve one POST for the read or write endpoint. Runs in a worker thread."""
    contract_address, function_name = parse_request_path(path)

    if kind == READ:
        args = parse_json_body(body, default=[])
        gateway = EnsisGateway.from_config(config)
        return gateway.read(contract_address, function_name, args)

    # An empty write body is a parse error: writes always need named arguments
    args = parse_json_body(body, default=None)
    gateway = EnsisGateway.from_config(config, with_signer=True)
    return gateway.write(contract_address, function_name, args)


def create_app(
    kind: str, config_provider: Callable[[], ConfigManager] | None = None
) -> FastAPI:
    """Build the FastAPI app for one endpoint.

    Args:
        kind: ``"read"`` or ``"write"``.
        config_provider: Returns the ConfigManager per request; defaults to
            the process-wide instance.

    Returns:
        The FastAPI application.
    """
    if kind not in (READ, WRITE):
        raise ValueError(f"Unknown endpoint kind: {kind}")

    provider = config_provider or get_config_manager
    app = FastAPI(title=f"ensis-{kind}", docs_url=None, redoc_url=None, openapi_url=None)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # Methods outside ALL_METHODS are refused by routing before the endpoint runs
        message = "Method not allowed" if exc.status_code == 405 else str(exc.detail)
        return JSONResponse(
            {"error": message}, status_code=exc.status_code, headers=exc.headers
        )

    @app.api_route("/{path:path}", methods=ALL_METHODS)
    async def ensis_endpoint(path: str, request: Request) -> JSONResponse:
        if request.method != "POST":
            return error_response("Method not allowed", 405)

        body = (await request.body()).decode("utf-8", errors="replace")
        context = {"endpoint": kind, "path": path}
        try:
            result = await run_in_threadpool(serve_request, kind, path, body, provider())
        except EnsisException as e:
            log_with_context(
                logger, logging.WARNING, f"Request failed: {e.message}", {**context, "code": e.code}
            )
            return error_response(e.message, 400)
        except Exception as e:
            logger.exception(f"Unexpected error serving {kind} request")
            return error_response(str(e) or type(e).__name__, 400)

        return JSONResponse(result)

    return app


def create_read_app(config_provider: Callable[[], ConfigManager] | None = None) -> FastAPI:
    return create_app(READ, config_provider)


def create_write_app(config_provider: Callable[[], ConfigManager] | None = None) -> FastAPI:
    return create_app(WRITE, config_provider)
