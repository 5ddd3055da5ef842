"""Exception hierarchy for the validation engine."""


class SourceCheckError(Exception):
    """Base class for all engine errors."""


class ValidationRunNotFoundError(SourceCheckError):
    """Raised when a validation run id is unknown to the store."""

    def __init__(self, run_id: str) -> None:
        self.run_id = run_id
        super().__init__(f"Validation run not found: {run_id}")


class InvalidRunStateError(SourceCheckError):
    """Raised when a run cannot move to the requested state."""

    def __init__(self, run_id: str, status: str, expected: str = "PENDING") -> None:
        self.run_id = run_id
        self.status = status
        self.expected = expected
        super().__init__(f"Validation run {run_id} is {status}, expected {expected}")


class AssessorError(SourceCheckError):
    """Raised by the LLM assessor when a completion cannot be produced."""
