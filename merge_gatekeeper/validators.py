"""Interfaces shared by all validators."""

from __future__ import annotations

from abc import ABC, abstractmethod


class Status(ABC):
    """The outcome of one validation pass."""

    @abstractmethod
    def detail(self) -> str:
        """Return a human-readable report."""

    @abstractmethod
    def is_success(self) -> bool:
        """Return True when the validation has passed."""

    def __str__(self) -> str:
        return self.detail()


class Validator(ABC):
    """Something that checks a condition and reports a Status."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The validator's name."""

    @abstractmethod
    def validate(self, deadline: float | None = None) -> Status:
        """Run one validation pass, finishing before the monotonic ``deadline``."""