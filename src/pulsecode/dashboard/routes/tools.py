"""Tool availability and path opening route handlers."""

import logging

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from .common import get_service, invalid_body, read_json, result_response

logger = logging.getLogger(__name__)


async def tool_availability(request: Request) -> JSONResponse:
    """GET /api/tools/{provider} - Check whether a provider CLI is installed.

    Always 200; unknown providers and missing binaries report
    available=false with guidance.

    """
    result = await get_service(request).check_tool_availability(request.path_params["provider"])
    return JSONResponse(result)


async def open_path(request: Request) -> JSONResponse:
    """POST /api/open - Open a path with the OS default handler.

    Body:
        {"path": "/path/to/file/or/dir"}

    """
    body = await read_json(request)
    if body is None:
        return invalid_body()
    path = body.get("path")
    if not isinstance(path, str):
        return invalid_body("Missing 'path' field")

    result = await get_service(request).open_path(path)
    if not result["success"]:
        logger.info("Open %s failed: %s", path, result["error"])
    return result_response(result)


routes = [
    Route("/api/tools/{provider}", tool_availability, methods=["GET"]),
    Route("/api/open", open_path, methods=["POST"]),
]
