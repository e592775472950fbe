"""Workspace supervisor: session management, event streaming and HTTP API."""
