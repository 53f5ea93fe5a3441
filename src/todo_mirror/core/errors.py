# src/todo_mirror/core/errors.py

"""
Error taxonomy shared by the remote client, the cache and the connectors.

- ValidationError: bad input; never reaches the network, nothing to roll back.
- TransportError: the remote call failed (network or HTTP status); the cache rolls back.
- NotFoundError: the entity is gone remotely; rolled back and pruned locally.
"""

from __future__ import annotations


class TodoError(Exception):
    """Base class for errors raised by todo_mirror."""


class ValidationError(TodoError, ValueError):
    pass


class TransportError(TodoError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(TransportError):
    def __init__(self, message: str, *, task_id: str | None = None) -> None:
        super().__init__(message, status_code=404)
        self.task_id = task_id


def friendly_error_message(err: Exception) -> str:
    """One-line text for the console error indicator."""
    if isinstance(err, ValidationError):
        return f"Invalid input: {err}"
    if isinstance(err, NotFoundError):
        return "That task no longer exists on the server; it was removed from the list."
    if isinstance(err, TransportError):
        if err.status_code is None:
            return "Server unreachable."
        return f"Server error (HTTP {err.status_code})."
    return str(err).strip() or err.__class__.__name__
