# backend/errors.py


class DocAssistantError(Exception):
    """Base class for every error raised by the document assistant core."""

    def __init__(self, message: str, hint: str | None = None):
        super().__init__(message)
        self.message = message
        self.hint = hint

    def user_message(self) -> str:
        return f"{self.message} {self.hint}" if self.hint else self.message


class InputRejected(DocAssistantError):
    """Wrong file type or size. The live session is left alone."""


class ParseFailed(DocAssistantError):
    """The uploaded file could not be converted into text + markup."""


class EnrichmentUnavailable(DocAssistantError):
    """Question enrichment could not produce a usable batch."""


class RateLimited(EnrichmentUnavailable):
    def __init__(self, message: str, reset_at: float, limit: int):
        super().__init__(message)
        self.reset_at = reset_at
        self.limit = limit


class SubstitutionError(DocAssistantError):
    pass


class InvalidMarkup(SubstitutionError):
    """The structured tree cannot be read as paragraphs of runs."""


class SkipRejected(DocAssistantError):
    """Skip requested for a placeholder that is not the current one."""


class ConversationError(DocAssistantError):
    pass


class GenerationNotReady(ConversationError):
    """Document generation requested before every placeholder was visited."""


class SessionNotFound(DocAssistantError):
    """The session id does not name the live session."""
