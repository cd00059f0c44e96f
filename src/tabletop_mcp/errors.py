"""Error taxonomy shared by providers, the dispatcher and the HTTP surface.

Every tool-level failure is a ``ToolError``; the dispatcher converts them
into protocol error envelopes. ``status_code`` is the HTTP status used when
the error is surfaced over the plain HTTP front door.
"""


class ToolError(Exception):
    """Base exception for errors raised while serving a tool call."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BadRequest(ToolError):
    """Malformed or missing arguments; correctable by the caller."""

    status_code = 400


class UnknownTool(ToolError):
    """Tool name does not match any generated or fixed route."""

    status_code = 400

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool: {name}")
        self.tool_name = name


class MissingCredential(ToolError):
    """No usable auth token at call time."""

    status_code = 400


class NotFound(ToolError):
    """Unknown provider, character or session."""

    status_code = 404


class SessionNotFound(NotFound):
    """Message posted for a session that is not (or no longer) retained."""

    def __init__(self, session_id: str) -> None:
        super().__init__("session not found")
        self.session_id = session_id


class UpstreamFailure(ToolError):
    """The remote API call failed.

    Carries the upstream status and message, never the transport exception.
    """

    status_code = 500

    def __init__(self, message: str, upstream_status: int | None = None) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status


class InvalidProvider(ToolError):
    """Provider registration contract violation. Fatal at startup."""
