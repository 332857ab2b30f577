"""Exceptions raised by the notification pipeline and its administration."""

from __future__ import annotations

from dataclasses import dataclass


class NotifierError(Exception):
    """Base class for every error raised by this package."""


@dataclass(frozen=True)
class ValidationIssue:
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}" if self.path else self.message


class PayloadValidationError(NotifierError, ValueError):
    """An inbound workflow event failed validation; the whole event is rejected."""

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = list(issues)
        super().__init__(self.message)

    @property
    def message(self) -> str:
        return ", ".join(str(issue) for issue in self.issues)


class StoreError(NotifierError):
    """The persistent store could not serve a request."""


class ProjectExistsError(NotifierError):
    """A project for the repository already exists."""


class ProjectNotFoundError(NotifierError, LookupError):
    """No project matches the given id or repository."""


class SubscriptionNotFoundError(NotifierError, LookupError):
    """No notification settings exist for the (chat, repository) pair."""
