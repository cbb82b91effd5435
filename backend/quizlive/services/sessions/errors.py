class SessionError(Exception):
    """Base class for live session failures."""


class NotFound(SessionError):
    """Unknown session code, or the authoring store could not produce it."""


class SessionFull(SessionError):
    """Roster is at capacity."""


class Unauthorized(SessionError):
    """Control action from a connection that is not the session admin."""


class StaleSubmission(SessionError):
    """Answer for an already-answered question or an inactive session."""
