"""models for DBs"""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .db import Base
from .timezone import now_local


class Project(Base):
    """A repository that may emit workflow notifications."""

    __tablename__ = "projects"
    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    repository = Column(String, unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_local)
    updated_at = Column(DateTime(timezone=True), default=now_local, onupdate=now_local)

    subscribers = relationship(
        "NotificationSettings", back_populates="project", cascade="all,delete"
    )
    webhooks = relationship("WebhookRecord", back_populates="project", cascade="all,delete")


class NotificationSettings(Base):
    """One chat's subscription to one repository, with its preference flags."""

    __tablename__ = "notification_settings"
    __table_args__ = (UniqueConstraint("chat_id", "repository", name="uq_chat_repository"),)

    id = Column(Integer, primary_key=True)
    chat_id = Column(String, index=True, nullable=False)
    username = Column(String, nullable=True)
    github_username = Column(String, nullable=True)
    repository = Column(String, index=True, nullable=False)
    project_id = Column(Integer, ForeignKey("projects.id"), index=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    notify_on_success = Column(Boolean, default=False, nullable=False)
    notify_on_failure = Column(Boolean, default=True, nullable=False)
    notify_on_build = Column(Boolean, default=True, nullable=False)
    notify_on_deploy = Column(Boolean, default=True, nullable=False)
    notify_on_test = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_local)
    updated_at = Column(DateTime(timezone=True), default=now_local, onupdate=now_local)

    project = relationship("Project", back_populates="subscribers")


class WebhookRecord(Base):
    """Processed workflow events (append-only)."""

    __tablename__ = "webhook_records"

    id = Column(Integer, primary_key=True)
    project_id = Column(Integer, ForeignKey("projects.id"), index=True, nullable=False)
    workflow_name = Column(String, nullable=False)
    run_id = Column(String, nullable=False)
    run_url = Column(String, nullable=False)
    status = Column(String, index=True, nullable=False)
    branch = Column(String, index=True, nullable=False)
    commit_sha = Column(String, nullable=False)
    commit_message = Column(Text, nullable=True)
    actor = Column(String, index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_local, index=True)

    project = relationship("Project", back_populates="webhooks")
