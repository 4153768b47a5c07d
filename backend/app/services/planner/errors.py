"""Planner exceptions. Constraint problems are never raised; they come back as Violations."""


class PlannerError(Exception):
    pass


class OracleError(PlannerError):
    """The assignment oracle could not produce a usable response."""


class OracleTransportError(OracleError):
    """Oracle unreachable, timed out, or the provider returned an error."""


class OracleResponseError(OracleError):
    """Oracle answered but the payload is not a parseable {meals, summary} object."""


class PlanGenerationError(PlannerError):
    """Every attempt failed before a candidate could be validated."""

    def __init__(self, message: str, attempts: int, last_error: Exception | None = None):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class PlanningCancelled(PlannerError):
    """Caller cancelled the run before any validation completed."""


class PlanRequestError(PlannerError):
    """The planning request cannot be served as given, e.g. an unknown household."""
