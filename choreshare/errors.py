"""Exceptions raised by choreshare."""


class ChoreshareError(Exception):
    """Base class for choreshare errors."""


class InputError(ChoreshareError):
    """A household snapshot or evaluations file could not be understood."""

    def __init__(self, message: str, source: str | None = None):
        self.source = source
        if source:
            message = f"{source}: {message}"
        super().__init__(message)


class IncompleteEvaluationsError(ChoreshareError):
    """Some participating members have not evaluated every task."""

    def __init__(self, missing: list[tuple[str, int, int]]):
        self.missing = missing
        details = ", ".join(f"{name} ({done}/{total})" for name, done, total in missing)
        super().__init__(f"Missing task evaluations: {details}")
