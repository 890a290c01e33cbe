"""An exception that carries several underlying errors."""

from __future__ import annotations

from collections.abc import Iterable

_HEADER = "composite error:"


class MultiError(Exception):
    """Several errors reported together as one."""

    def __init__(self, errors: Iterable[BaseException | None]) -> None:
        self.errors: list[BaseException | None] = list(errors)
        super().__init__(*self.errors)

    def __str__(self) -> str:
        if not self.errors:
            return ""
        if len(self.errors) == 1:
            return str(self.errors[0])
        lines = "".join(f"\n\t{error}" for error in self.errors if error is not None)
        return f"{_HEADER}{lines}"

    def matches(self, exc_type: type[BaseException]) -> bool:
        """Return True if any contained error, or any error it was raised from, is an exc_type."""
        return any(_matches(error, exc_type) for error in self.errors)


def _matches(error: BaseException | None, exc_type: type[BaseException]) -> bool:
    seen: set[int] = set()
    while error is not None and id(error) not in seen:
        seen.add(id(error))
        if isinstance(error, exc_type):
            return True
        if isinstance(error, MultiError) and error.matches(exc_type):
            return True
        error = error.__cause__
    return False