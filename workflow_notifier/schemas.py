"""Request and event schemas."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    HttpUrl,
    TypeAdapter,
    ValidationError,
)

JobResult = Literal["success", "failure", "in_progress", "cancelled", "skipped"]
WorkflowStatus = Literal["success", "failure", "cancelled", "skipped", "in_progress"]

JOB_RESULTS: tuple[str, ...] = ("success", "failure", "in_progress", "cancelled", "skipped")

REPOSITORY_PATTERN = r"^[A-Za-z0-9._-]+/[A-Za-z0-9._-]+$"

_HTTP_URL = TypeAdapter(HttpUrl)


def _check_url(value: str) -> str:
    # validate only; HttpUrl would normalise the string (trailing slashes etc.)
    try:
        _HTTP_URL.validate_python(value)
    except ValidationError:
        raise ValueError("must be a valid URL") from None
    return value


def _coerce_str(value: Any) -> Any:
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


Url = Annotated[str, AfterValidator(_check_url)]
NonEmpty = Annotated[str, Field(min_length=1)]


class Job(BaseModel):
    """Lightweight job record, the only job shape past normalization."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: NonEmpty
    result: JobResult
    url: str
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    duration_ms: Optional[int] = None


class JobIn(BaseModel):
    id: int
    name: NonEmpty
    result: JobResult
    url: Url
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    duration_ms: Optional[Annotated[int, Field(ge=0)]] = None


class UpstreamJob(BaseModel):
    """
    The fields of a GitHub Actions job object that job derivation reads.

    Anything else GitHub sends is kept in ``model_extra`` and never interpreted.
    """

    model_config = ConfigDict(extra="allow")

    id: int
    name: Optional[str] = None
    status: Optional[str] = None
    conclusion: Optional[str] = None
    html_url: Optional[str] = None
    url: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None


class JobsFull(BaseModel):
    model_config = ConfigDict(extra="allow")

    total_count: Optional[int] = None
    jobs: list[UpstreamJob] = Field(default_factory=list)


class WorkflowEventIn(BaseModel):
    """Inbound payload as posted by the CI workflow step."""

    workflow_name: NonEmpty
    repository: Annotated[str, Field(pattern=REPOSITORY_PATTERN)]
    run_id: Annotated[str, BeforeValidator(_coerce_str), Field(min_length=1)]
    run_url: Url
    status: WorkflowStatus
    branch: NonEmpty
    commit_sha: Annotated[str, Field(min_length=7)]
    commit_message: Optional[str] = None
    actor: NonEmpty
    jobs: Optional[list[JobIn]] = None
    jobs_full: Optional[JobsFull] = None
    workflow_duration_ms: Optional[int] = None


class WorkflowEvent(BaseModel):
    """A validated workflow event carrying exactly one canonical job list."""

    model_config = ConfigDict(frozen=True)

    workflow_name: str
    repository: str
    run_id: str
    run_url: str
    status: WorkflowStatus
    branch: str
    commit_sha: str
    commit_message: Optional[str] = None
    actor: str
    jobs: tuple[Job, ...] = ()
    workflow_duration_ms: Optional[int] = None


class ProjectRequest(BaseModel):
    name: Annotated[str, Field(min_length=1, max_length=100)]
    repository: Annotated[str, Field(pattern=REPOSITORY_PATTERN)]
    description: Optional[Annotated[str, Field(max_length=500)]] = None


class ProjectUpdate(BaseModel):
    name: Optional[Annotated[str, Field(min_length=1, max_length=100)]] = None
    description: Optional[Annotated[str, Field(max_length=500)]] = None
    is_active: Optional[bool] = None


class SubscriptionRequest(BaseModel):
    chat_id: NonEmpty
    repository: Annotated[str, Field(pattern=REPOSITORY_PATTERN)]
    username: Optional[str] = None
    github_username: Optional[str] = None


class PreferencesUpdate(BaseModel):
    notify_on_success: Optional[bool] = None
    notify_on_failure: Optional[bool] = None
    notify_on_build: Optional[bool] = None
    notify_on_deploy: Optional[bool] = None
    notify_on_test: Optional[bool] = None
