import asyncio
from types import SimpleNamespace

import pytest

from workflow_notifier.db import Database
from workflow_notifier.errors import StoreError
from workflow_notifier.services.delivery import DeliveryOutcome


def make_payload(**overrides):
    payload = {
        "workflow_name": "CI Pipeline",
        "repository": "octo/demo-app",
        "run_id": "123456789",
        "run_url": "https://github.com/octo/demo-app/actions/runs/123456789",
        "status": "failure",
        "branch": "main",
        "commit_sha": "abc123def456789",
        "commit_message": "Add new feature and fix bugs",
        "actor": "octocat",
    }
    payload.update(overrides)
    return payload


def make_subscriber(chat_id, **flags):
    prefs = {
        "notify_on_success": False,
        "notify_on_failure": True,
        "notify_on_build": True,
        "notify_on_deploy": True,
        "notify_on_test": True,
    }
    prefs.update(flags)
    return SimpleNamespace(chat_id=str(chat_id), is_active=True, **prefs)


class FakeProjectStore:
    def __init__(self, *projects, fail=False):
        self.projects = {p.repository: p for p in projects}
        self.fail = fail

    def find_by_repository(self, repository):
        if self.fail:
            raise StoreError("database unavailable")
        return self.projects.get(repository)

    def create(self, name, repository, description):
        project = SimpleNamespace(
            id=len(self.projects) + 1,
            name=name,
            repository=repository,
            description=description,
            is_active=True,
        )
        self.projects[repository] = project
        return project


class FakeSubscriberStore:
    def __init__(self, subscribers=()):
        self.subscribers = list(subscribers)
        self.calls = []

    def list_active(self, repository, project_id=None):
        self.calls.append((repository, project_id))
        return [s for s in self.subscribers if s.is_active]


class FakeAuditStore:
    def __init__(self, fail=False):
        self.records = []
        self.fail = fail

    def append(self, record):
        if self.fail:
            raise StoreError("disk full")
        self.records.append(record)


class FakeChannel:
    """Records every send; chats in ``failing`` fail, chats in ``hanging`` never answer."""

    def __init__(self, failing=(), raising=(), hanging=()):
        self.failing = set(failing)
        self.raising = set(raising)
        self.hanging = set(hanging)
        self.sent = []

    async def send(self, chat_id, text):
        if chat_id in self.hanging:
            await asyncio.sleep(5)
        if chat_id in self.raising:
            raise ConnectionError(f"cannot reach {chat_id}")
        if chat_id in self.failing:
            return DeliveryOutcome(chat_id=chat_id, ok=False, error="chat not found")
        self.sent.append((chat_id, text))
        return DeliveryOutcome(chat_id=chat_id, ok=True)


@pytest.fixture
def project():
    return SimpleNamespace(id=1, name="Demo App", repository="octo/demo-app", is_active=True)


@pytest.fixture
def database():
    db = Database("sqlite://")
    db.connect()
    yield db
    db.disconnect()


@pytest.fixture
def session(database):
    with database.session() as s:
        yield s
