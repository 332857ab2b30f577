import asyncio
import time

import pytest

from workflow_notifier.errors import PayloadValidationError, StoreError
from workflow_notifier.services.dispatcher import (
    SKIP_NO_SUBSCRIBERS,
    SKIP_PROJECT_INACTIVE,
    SKIP_PROJECT_NOT_FOUND,
    Dispatcher,
)
from tests.conftest import (
    FakeAuditStore,
    FakeChannel,
    FakeProjectStore,
    FakeSubscriberStore,
    make_payload,
    make_subscriber,
)


def build(project=None, subscribers=(), channel=None, audit=None, projects=None, timeout=1.0):
    projects = projects or (FakeProjectStore(project) if project else FakeProjectStore())
    return Dispatcher(
        projects,
        FakeSubscriberStore(subscribers),
        audit or FakeAuditStore(),
        channel or FakeChannel(),
        delivery_timeout=timeout,
    )


@pytest.mark.asyncio
async def test_dispatch_sends_same_text_to_every_recipient(project):
    channel = FakeChannel()
    audit = FakeAuditStore()
    subs = [make_subscriber(1), make_subscriber(2), make_subscriber(3)]
    dispatcher = build(project, subs, channel=channel, audit=audit)

    result = await dispatcher.dispatch(make_payload())

    assert result.notified
    assert result.sent_count == 3
    assert [chat for chat, _ in channel.sent] == ["1", "2", "3"]
    assert len({text for _, text in channel.sent}) == 1
    assert "*Project:* Demo App" in channel.sent[0][1]
    assert result.audit_recorded
    assert len(audit.records) == 1
    record = audit.records[0]
    assert record.project_id == project.id
    assert record.run_id == "123456789"
    assert record.status == "failure"
    assert record.commit_message == "Add new feature and fix bugs"


@pytest.mark.asyncio
async def test_success_event_with_success_notifications_off(project):
    channel = FakeChannel()
    audit = FakeAuditStore()
    sub = make_subscriber(1, notify_on_success=False, notify_on_failure=True)
    dispatcher = build(project, [sub], channel=channel, audit=audit)

    result = await dispatcher.dispatch(make_payload(status="success"))

    assert channel.sent == []
    assert result.recipients == []
    assert len(audit.records) == 1


@pytest.mark.asyncio
async def test_deploy_workflow_excluded(project):
    channel = FakeChannel()
    sub = make_subscriber(1, notify_on_success=True, notify_on_deploy=False)
    dispatcher = build(project, [sub], channel=channel)

    await dispatcher.dispatch(make_payload(workflow_name="Deploy to Staging", status="success"))

    assert channel.sent == []


@pytest.mark.asyncio
async def test_unknown_repository_is_a_noop():
    channel = FakeChannel()
    audit = FakeAuditStore()
    dispatcher = build(None, [make_subscriber(1)], channel=channel, audit=audit)

    result = await dispatcher.dispatch(make_payload(repository="octo/unknown"))

    assert result.skipped_reason == SKIP_PROJECT_NOT_FOUND
    assert not result.notified
    assert result.project_id is None
    assert channel.sent == []
    assert audit.records == []


@pytest.mark.asyncio
async def test_inactive_project_is_a_noop(project):
    project.is_active = False
    audit = FakeAuditStore()
    dispatcher = build(project, [make_subscriber(1)], audit=audit)

    result = await dispatcher.dispatch(make_payload())

    assert result.skipped_reason == SKIP_PROJECT_INACTIVE
    assert audit.records == []


@pytest.mark.asyncio
async def test_no_subscribers_is_a_noop(project):
    audit = FakeAuditStore()
    dispatcher = build(project, [], audit=audit)

    result = await dispatcher.dispatch(make_payload())

    assert result.skipped_reason == SKIP_NO_SUBSCRIBERS
    assert audit.records == []


@pytest.mark.asyncio
async def test_subscribers_looked_up_by_repository_and_project(project):
    subscribers = FakeSubscriberStore([make_subscriber(1)])
    dispatcher = Dispatcher(
        FakeProjectStore(project), subscribers, FakeAuditStore(), FakeChannel()
    )
    await dispatcher.dispatch(make_payload())
    assert subscribers.calls == [("octo/demo-app", project.id)]


@pytest.mark.asyncio
async def test_one_unreachable_recipient_does_not_stop_the_others(project):
    channel = FakeChannel(raising={"2"})
    audit = FakeAuditStore()
    subs = [make_subscriber(1), make_subscriber(2), make_subscriber(3)]
    dispatcher = build(project, subs, channel=channel, audit=audit)

    result = await dispatcher.dispatch(make_payload())

    assert [chat for chat, _ in channel.sent] == ["1", "3"]
    assert result.sent_count == 2
    assert result.failed_count == 1
    failed = [r for r in result.recipients if not r.ok]
    assert failed[0].chat_id == "2"
    assert "cannot reach 2" in failed[0].error
    assert len(audit.records) == 1


@pytest.mark.asyncio
async def test_reported_failures_are_counted(project):
    channel = FakeChannel(failing={"1"})
    dispatcher = build(project, [make_subscriber(1), make_subscriber(2)], channel=channel)

    result = await dispatcher.dispatch(make_payload())

    assert result.failed_count == 1
    assert result.recipients[0].error == "chat not found"


@pytest.mark.asyncio
async def test_slow_recipient_times_out(project):
    channel = FakeChannel(hanging={"slow"})
    audit = FakeAuditStore()
    subs = [make_subscriber("slow"), make_subscriber("fast")]
    dispatcher = build(project, subs, channel=channel, audit=audit, timeout=0.05)

    result = await dispatcher.dispatch(make_payload())

    slow, fast = result.recipients
    assert not slow.ok
    assert "timed out" in slow.error
    assert fast.ok
    assert len(audit.records) == 1


@pytest.mark.asyncio
async def test_all_deliveries_failing_still_records_event(project):
    channel = FakeChannel(raising={"1", "2"})
    audit = FakeAuditStore()
    dispatcher = build(project, [make_subscriber(1), make_subscriber(2)], channel=channel, audit=audit)

    result = await dispatcher.dispatch(make_payload())

    assert result.sent_count == 0
    assert len(audit.records) == 1


@pytest.mark.asyncio
async def test_invalid_payload_has_no_side_effects(project):
    channel = FakeChannel()
    audit = FakeAuditStore()
    dispatcher = build(project, [make_subscriber(1)], channel=channel, audit=audit)

    with pytest.raises(PayloadValidationError):
        await dispatcher.dispatch(make_payload(commit_sha="abc"))

    assert channel.sent == []
    assert audit.records == []


@pytest.mark.asyncio
async def test_store_failure_before_delivery_propagates(project):
    channel = FakeChannel()
    audit = FakeAuditStore()
    dispatcher = build(
        subscribers=[make_subscriber(1)],
        channel=channel,
        audit=audit,
        projects=FakeProjectStore(project, fail=True),
    )

    with pytest.raises(StoreError):
        await dispatcher.dispatch(make_payload())

    assert channel.sent == []
    assert audit.records == []


@pytest.mark.asyncio
async def test_audit_failure_is_reported_not_raised(project):
    channel = FakeChannel()
    dispatcher = build(project, [make_subscriber(1)], channel=channel, audit=FakeAuditStore(fail=True))

    result = await dispatcher.dispatch(make_payload())

    assert result.sent_count == 1
    assert result.audit_recorded is False


@pytest.mark.asyncio
async def test_result_carries_job_summary(project):
    jobs = [
        {"id": i, "name": f"job {i}", "result": r, "url": f"https://example.com/{i}"}
        for i, r in enumerate(["success"] * 7 + ["failure"] * 3 + ["skipped"] * 2)
    ]
    channel = FakeChannel()
    dispatcher = build(project, [make_subscriber(1)], channel=channel)

    result = await dispatcher.dispatch(make_payload(jobs=jobs))

    assert result.jobs_count == 12
    assert result.jobs_summary == {
        "success": 7,
        "failure": 3,
        "in_progress": 0,
        "cancelled": 0,
        "skipped": 2,
        "total": 12,
    }
    text = channel.sent[0][1]
    assert "Totals: ✅ 7 • ❌ 3 • 🔄 0 • ⚠️ 0 • ⏭️ 2" in text
    assert "…and 2 more" in text


class SlowProjectStore(FakeProjectStore):
    def find_by_repository(self, repository):
        time.sleep(0.3)
        return super().find_by_repository(repository)


@pytest.mark.asyncio
async def test_slow_store_does_not_block_the_event_loop(project):
    dispatcher = build(projects=SlowProjectStore(project), subscribers=[make_subscriber(1)])
    finished = {}

    async def run_dispatch():
        await dispatcher.dispatch(make_payload())
        finished["dispatch"] = time.monotonic()

    async def ticker():
        for _ in range(5):
            await asyncio.sleep(0.01)
        finished["ticker"] = time.monotonic()

    await asyncio.gather(run_dispatch(), ticker())

    assert finished["ticker"] < finished["dispatch"]
