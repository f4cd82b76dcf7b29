"""Exception taxonomy.

Each exception carries a technical message (for logs) and a user-facing
message plus HTTP status (for API responses).
"""

from __future__ import annotations


class BreakItDownError(Exception):
    """Base exception for all service errors."""

    def __init__(self, message: str, user_message: str | None = None, status_code: int = 500):
        super().__init__(message)
        self.user_message = user_message or message
        self.status_code = status_code


class ConfigurationError(BreakItDownError):
    """No completion backend is configured."""

    def __init__(self, message: str):
        super().__init__(message, "The AI backend is not configured.", 503)


# =============================================================================
# COMPLETION ERRORS
# =============================================================================


class CompletionError(BreakItDownError):
    """A completion backend call failed."""

    def __init__(self, message: str, user_message: str = "Decomposition failed.", status_code: int = 502):
        super().__init__(message, user_message, status_code)


class ProviderError(CompletionError):
    """Backend answered with a non-success status."""

    def __init__(self, status: int | None, message: str):
        super().__init__(f"Provider error {status}: {message}")
        self.status = status
        self.provider_message = message


class TransportError(CompletionError):
    """Network or transport failure before a response arrived."""


class CompletionTimeout(CompletionError):
    """Backend call exceeded its allotted time."""

    def __init__(self, timeout_s: float, modality: str = "text"):
        super().__init__(
            f"{modality} completion timed out after {timeout_s:g}s",
            "The AI backend took too long to answer.",
            504,
        )
        self.timeout_s = timeout_s
        self.modality = modality


class MalformedResponse(BreakItDownError):
    """Model output could not be parsed or has the wrong shape."""

    def __init__(self, reason: str, raw: str):
        super().__init__(f"Malformed model response: {reason}", "Decomposition failed.", 502)
        self.reason = reason
        self.raw = raw


# =============================================================================
# TREE ERRORS
# =============================================================================


class DepthExceeded(BreakItDownError):
    """Internal guard: expansion requested past the maximum depth."""

    def __init__(self, node_id: str, depth: int, max_depth: int):
        super().__init__(f"Node {node_id} at depth {depth} exceeds max depth {max_depth}")
        self.node_id = node_id
        self.depth = depth
        self.max_depth = max_depth


class NodeNotFound(BreakItDownError):
    def __init__(self, node_id: str):
        super().__init__(f"Node not found: {node_id}", "That part no longer exists.", 404)
        self.node_id = node_id


class EnrichmentFailure(BreakItDownError):
    """Card generation or decoration lookup failed. Never propagates to expansion."""


# =============================================================================
# STORAGE ERRORS
# =============================================================================


class WorkspaceNotFound(BreakItDownError):
    def __init__(self, workspace_id: str):
        super().__init__(f"Workspace not found: {workspace_id}", "This workspace has expired.", 404)
        self.workspace_id = workspace_id


class SessionNotFound(BreakItDownError):
    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}", "Session does not exist.", 404)
        self.session_id = session_id


class InvalidSnapshot(BreakItDownError):
    """A snapshot document describes a tree that violates node invariants."""

    def __init__(self, reason: str):
        super().__init__(f"Invalid snapshot: {reason}", "The saved workspace is corrupted.", 422)
        self.reason = reason
