"""Workspace route handlers.

Provides endpoints for workspaces and their sessions:
- /api/workspaces - List and create workspaces
- /api/workspaces/{id} - Get/delete a workspace
- /api/workspaces/{id}/command - Route a line of input
- /api/workspaces/{id}/stop - Stop the running session
- /api/workspaces/{id}/git/refresh - Re-read branch and changes
- /api/workspaces/{id}/output - Buffered output of the current session
"""

import logging

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from .common import get_service, invalid_body, read_json, result_response

logger = logging.getLogger(__name__)


async def list_workspaces(request: Request) -> JSONResponse:
    """GET /api/workspaces - List all workspaces.

    Returns:
        JSON object with workspace summaries in creation order.

    """
    service = get_service(request)
    workspaces = await service.list_workspaces()

    return JSONResponse({
        "workspaces": workspaces,
        "count": len(workspaces),
        "running_count": sum(1 for ws in workspaces if ws["status"] == "running"),
    })


async def create_workspace(request: Request) -> JSONResponse:
    """POST /api/workspaces - Create a workspace.

    Body:
        {
            "path": "/path/to/project",
            "name": "Display Name",
            "provider": "claude"
        }

    Returns:
        201: Workspace created.
        400: Missing or invalid fields.

    """
    service = get_service(request)

    body = await read_json(request)
    if body is None:
        return invalid_body()

    path = body.get("path")
    if not path:
        return invalid_body("Missing 'path' field")

    result = await service.create_workspace(str(path), str(body.get("name") or ""), body.get("provider"))
    return result_response(result, success_status=201)


async def get_workspace(request: Request) -> JSONResponse:
    """GET /api/workspaces/{id} - Get workspace details.

    Returns:
        200: Workspace summary.
        404: Workspace not found.

    """
    service = get_service(request)
    return result_response(await service.get_workspace(request.path_params["id"]))


async def delete_workspace(request: Request) -> JSONResponse:
    """DELETE /api/workspaces/{id} - Remove a workspace.

    A running session is terminated first.

    Returns:
        200: Workspace removed.
        404: Workspace not found.

    """
    service = get_service(request)
    workspace_id = request.path_params["id"]
    result = await service.remove_workspace(workspace_id)
    if result["success"]:
        logger.info("Workspace %s removed via API", workspace_id[:8])
    return result_response(result)


async def execute_command(request: Request) -> JSONResponse:
    """POST /api/workspaces/{id}/command - Route a line of input.

    Body:
        {"text": "claude --resume"}

    Returns:
        200: Input forwarded, session started, or shell result (a non-zero
            shell exit is still 200 with success false).
        400: Empty input with no session.
        404: Workspace not found.
        409: Session ended before input could be written.
        500: Tool or shell could not be launched.

    """
    service = get_service(request)

    body = await read_json(request)
    if body is None:
        return invalid_body()

    text = body.get("text", body.get("command"))
    if not isinstance(text, str):
        return invalid_body("Missing 'text' field")

    result = await service.execute_command(request.path_params["id"], text)
    if "error_type" not in result:
        return JSONResponse(result)
    return result_response(result)


async def stop_session(request: Request) -> JSONResponse:
    """POST /api/workspaces/{id}/stop - Stop the running session.

    Returns:
        200: Session signalled, workspace idle.
        404: Workspace not found.
        409: No session running.

    """
    service = get_service(request)
    return result_response(await service.stop_session(request.path_params["id"]))


async def refresh_git(request: Request) -> JSONResponse:
    """POST /api/workspaces/{id}/git/refresh - Re-read git info."""
    service = get_service(request)
    return result_response(await service.refresh_git_info(request.path_params["id"]))


async def get_output(request: Request) -> JSONResponse:
    """GET /api/workspaces/{id}/output - Buffered raw session output."""
    service = get_service(request)
    return result_response(await service.get_session_output(request.path_params["id"]))


routes = [
    Route("/api/workspaces", list_workspaces, methods=["GET"]),
    Route("/api/workspaces", create_workspace, methods=["POST"]),
    Route("/api/workspaces/{id}", get_workspace, methods=["GET"]),
    Route("/api/workspaces/{id}", delete_workspace, methods=["DELETE"]),
    Route("/api/workspaces/{id}/command", execute_command, methods=["POST"]),
    Route("/api/workspaces/{id}/stop", stop_session, methods=["POST"]),
    Route("/api/workspaces/{id}/git/refresh", refresh_git, methods=["POST"]),
    Route("/api/workspaces/{id}/output", get_output, methods=["GET"]),
]
