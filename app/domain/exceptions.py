"""
Domain exceptions - raised synchronously on invariant violations.
"""


class DomainValidationError(ValueError):
    """Invalid field value, malformed input or illegal operation on an aggregate."""


class ImmutabilityError(DomainValidationError):
    """Mutation attempted on a document that is no longer editable."""


class IllegalTransitionError(DomainValidationError):
    """Status change not present in the document's state machine."""

    def __init__(self, current: str, target: str, detail: str = ""):
        self.current = current
        self.target = target
        message = f"Illegal transition from {current} to {target}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class CorruptedDocumentError(DomainValidationError):
    """Persisted state that can never be produced by the state machine."""
