"""HTTP route handlers organized by domain.

- workspaces: Workspace CRUD, command routing, session control
- git: Branch and working-tree status for arbitrary paths
- tools: Provider availability and opening paths
- events: Server-sent events for live output
"""

from .events import routes as events_routes
from .git import routes as git_routes
from .tools import routes as tools_routes
from .workspaces import routes as workspaces_routes

# Aggregate all routes
API_ROUTES = workspaces_routes + git_routes + tools_routes + events_routes

__all__ = ["API_ROUTES"]
