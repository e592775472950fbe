"""Git status route handlers.

Provides read-only endpoints for arbitrary paths:
- /api/git/branch?path= - Current branch
- /api/git/changes?path= - Working-tree changes
"""

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from .common import get_service, invalid_body


async def git_branch(request: Request) -> JSONResponse:
    """GET /api/git/branch - Current branch of a path.

    Query params:
        path: Directory inside a repository.

    Returns:
        {success, branch}; branch is null outside a repository or on a
        detached HEAD.

    """
    path = request.query_params.get("path")
    if not path:
        return invalid_body("Missing 'path' query parameter")
    return JSONResponse(await get_service(request).get_git_branch(path))


async def git_changes(request: Request) -> JSONResponse:
    """GET /api/git/changes - Working-tree changes of a path."""
    path = request.query_params.get("path")
    if not path:
        return invalid_body("Missing 'path' query parameter")
    return JSONResponse(await get_service(request).get_file_changes(path))


routes = [
    Route("/api/git/branch", git_branch, methods=["GET"]),
    Route("/api/git/changes", git_changes, methods=["GET"]),
]
