"""
Exceptions raised by the triage core.
"""


class TriageError(Exception):
    """Base exception for triage operations."""
    pass


class StaleRecommendation(TriageError):
    """Raised when a recommendation no longer matches the roster or pending queue."""
    pass


class UnknownAgent(TriageError):
    """Raised when an operation names an agent id that is not in the roster."""
    pass
