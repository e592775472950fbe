"""Shared helpers for route handlers."""

from typing import Any

from starlette.requests import Request
from starlette.responses import JSONResponse

from pulsecode.dashboard.service import WorkspaceService

# Facade error types to HTTP status
ERROR_STATUS = {
    "ValidationError": 400,
    "NotFoundError": 404,
    "SessionAlreadyActiveError": 409,
    "NoActiveSessionError": 409,
    "SpawnError": 500,
    "ProcessExitError": 500,
    "ConfigError": 500,
}


def get_service(request: Request) -> WorkspaceService:
    """Get workspace service from app state."""
    return request.app.state.service


async def read_json(request: Request) -> dict[str, Any] | None:
    """Parse a JSON object body, or None if the body is not one."""
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def result_response(result: dict[str, Any], success_status: int = 200) -> JSONResponse:
    """Convert a facade result dict to a JSON response.

    Args:
        result: Result with a "success" key and optional "error_type".
        success_status: Status code used when success is true.

    Returns:
        JSONResponse with the mapped status code.

    """
    if result.get("success", True):
        return JSONResponse(result, status_code=success_status)
    status_code = ERROR_STATUS.get(result.get("error_type", ""), 400)
    return JSONResponse(result, status_code=status_code)


def invalid_body(message: str = "Invalid JSON body") -> JSONResponse:
    return JSONResponse({"success": False, "error": message}, status_code=400)
