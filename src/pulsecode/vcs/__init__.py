"""Version-control status reading."""

from .git_reader import (
    ChangeStatus,
    ChangeType,
    FileChange,
    GitReader,
    parse_status_line,
    parse_status_output,
)

__all__ = [
    "ChangeStatus",
    "ChangeType",
    "FileChange",
    "GitReader",
    "parse_status_line",
    "parse_status_output",
]
