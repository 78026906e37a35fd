"""Error taxonomy shared by the generator, orchestrator and stores.

Every error derives from :class:`TrainerError`; the HTTP layer flattens any of
them into a single ``{"error": message}`` response.
"""


class TrainerError(Exception):
    """Base class for all application errors."""


class ValidationError(TrainerError):
    """Request is malformed or incomplete. Raised before any model call."""

    def __init__(self, message: str, missing: list[str] | None = None):
        super().__init__(message)
        self.missing = missing or []


class InvalidAction(TrainerError):
    """Unrecognized ``action`` discriminator."""

    def __init__(self, action: object):
        super().__init__(f"Invalid action specified: {action}")
        self.action = action


class GenerationRefused(TrainerError):
    """The model declined to produce the requested content."""

    def __init__(self, reason: str):
        super().__init__(f"Model refused the request: {reason}")
        self.reason = reason


class SchemaViolation(TrainerError):
    """Model output did not conform to the required structure."""


class EmptyResponse(TrainerError):
    """A free-form model call returned no content."""


class UpstreamError(TrainerError):
    """Transport or provider-level failure."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is None:
            return f"Upstream error: {self.args[0]}"
        return f"Upstream error ({self.status_code}): {self.args[0]}"


class RecordNotFound(TrainerError):
    """Mutation targets an exercise that is not in the history."""

    def __init__(self, exercise_id: str):
        super().__init__(
            f"Exercise with ID {exercise_id} not found in history. Cannot record attempt."
        )
        self.exercise_id = exercise_id
