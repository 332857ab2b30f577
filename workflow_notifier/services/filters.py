"""Per-subscriber notification preferences."""

from __future__ import annotations

import enum
from typing import Iterable, Protocol, TypeVar

from workflow_notifier.schemas import WorkflowEvent


class NotifyToggle(str, enum.Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    BUILD = "build"
    DEPLOY = "deploy"
    TEST = "test"


_FLAG_FIELDS: dict[NotifyToggle, str] = {
    NotifyToggle.SUCCESS: "notify_on_success",
    NotifyToggle.FAILURE: "notify_on_failure",
    NotifyToggle.BUILD: "notify_on_build",
    NotifyToggle.DEPLOY: "notify_on_deploy",
    NotifyToggle.TEST: "notify_on_test",
}

# workflow-name keywords, checked as case-insensitive substrings
WORKFLOW_KEYWORDS: tuple[NotifyToggle, ...] = (
    NotifyToggle.BUILD,
    NotifyToggle.DEPLOY,
    NotifyToggle.TEST,
)


class Preferences(Protocol):
    notify_on_success: bool
    notify_on_failure: bool
    notify_on_build: bool
    notify_on_deploy: bool
    notify_on_test: bool


P = TypeVar("P", bound=Preferences)


def flag_for(toggle: NotifyToggle) -> str:
    return _FLAG_FIELDS[NotifyToggle(toggle)]


def get_flag(prefs: Preferences, toggle: NotifyToggle) -> bool:
    return bool(getattr(prefs, flag_for(toggle)))


def set_flag(prefs: Preferences, toggle: NotifyToggle, value: bool) -> None:
    setattr(prefs, flag_for(toggle), bool(value))


def applicable_toggles(event: WorkflowEvent) -> list[NotifyToggle]:
    """Preference flags that must be on for a subscriber to receive ``event``."""
    toggles: list[NotifyToggle] = []
    status = event.status.lower()
    if status == "success":
        toggles.append(NotifyToggle.SUCCESS)
    elif status == "failure":
        toggles.append(NotifyToggle.FAILURE)

    workflow = event.workflow_name.lower()
    toggles.extend(kw for kw in WORKFLOW_KEYWORDS if kw.value in workflow)
    return toggles


def select_subscribers(event: WorkflowEvent, subscribers: Iterable[P]) -> list[P]:
    """Subscribers whose preferences admit ``event``, in input order."""
    toggles = applicable_toggles(event)
    return [s for s in subscribers if all(get_flag(s, t) for t in toggles)]


def describe_preferences(prefs: Preferences) -> dict[str, bool]:
    return {toggle.value: get_flag(prefs, toggle) for toggle in NotifyToggle}
