"""
Error kinds raised by the vote submission workflow.

The tally itself never raises. Everything the workflow can fail with derives
from ColorPollError so the HTTP layer can tell "you already voted" apart from
"try again".
"""
from typing import Any, Dict, Optional


class ColorPollError(Exception):
    """Base class; carries a context dict that is rendered into str()."""

    kind: str = "error"
    _retryable: bool = False

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.context = context or {}
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        return self._retryable

    def __str__(self):
        base_msg = super().__str__()
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{base_msg} (context: {context_str})"
        return base_msg


class AlreadyVoted(ColorPollError):
    """Guard denial. Only a session restart lets this session vote again."""
    kind = "already_voted"


class SubmissionInProgress(AlreadyVoted):
    """A vote from this session is still waiting on the store."""
    kind = "submission_in_progress"


class StoreUnavailable(ColorPollError):
    """The store's list() or create() reported failure."""
    kind = "store_unavailable"
    _retryable = True


class UnknownOption(ColorPollError):
    """Vote requested for a name that is not in the palette."""
    kind = "unknown_option"
