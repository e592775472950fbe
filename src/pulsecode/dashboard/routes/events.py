"""Server-sent events route.

Streams workspace_updated, workspace_removed and terminal_output events.
"""

from starlette.requests import Request
from starlette.responses import StreamingResponse
from starlette.routing import Route

from .common import get_service


async def events(request: Request) -> StreamingResponse:
    """GET /api/events - SSE stream of workspace events.

    Query params:
        workspace_id: Optional filter to one workspace.

    Returns:
        SSE stream.

    """
    broadcaster = get_service(request).broadcaster
    workspace_id = request.query_params.get("workspace_id") or None

    return StreamingResponse(
        broadcaster.subscribe(workspace_id),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


routes = [
    Route("/api/events", events, methods=["GET"]),
]
