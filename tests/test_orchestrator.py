import threading
import time as time_module
from datetime import datetime, time, timedelta, timezone

import pytest

from app.application.use_cases.notifications import DeliveryOrchestrator
from app.application.use_cases.templates import create_template
from app.application.worker import ScheduleWorker
from app.domain.entities import (
    Notification,
    NotificationChannel,
    NotificationStatus,
    NotificationType,
    SendResult,
)
from app.domain.errors import (
    DispatchInProgress,
    MissingVariable,
    NotificationNotFound,
    TemplateNotFound,
    TransientProviderFailure,
    UnsupportedChannel,
    ValidationError,
)
from app.infrastructure.channels import SenderRegistry
from app.infrastructure.repositories import NotificationPreferenceRepository
from conftest import BlockingSender, FakeSender


def _notification(user, **overrides):
    values = {
        "id": None,
        "user_id": user.id,
        "title": "Pedido",
        "message": "Order #123 confirmed",
        "channel": NotificationChannel.EMAIL,
    }
    values.update(overrides)
    return Notification(**values)


def _orchestrator(session_factory, settings, clock, *senders):
    return DeliveryOrchestrator(
        session_factory, SenderRegistry(senders), settings=settings, clock=clock
    )


def _run_in_thread(target, *args):
    outcome = {}

    def runner():
        try:
            outcome["result"] = target(*args)
        except Exception as exc:  # noqa: BLE001
            outcome["error"] = exc

    thread = threading.Thread(target=runner)
    thread.start()
    return thread, outcome


def test_dispatch_sends_email_and_records_attempt(orchestrator, email_sender, make_user, set_preference):
    user = make_user()
    set_preference(user, "TRANSACTIONAL", "EMAIL")

    result = orchestrator.dispatch(_notification(user))

    assert result.status is NotificationStatus.SENT
    assert result.error_code is None
    assert orchestrator.get_status(result.notification_id) is NotificationStatus.SENT
    assert orchestrator.get_status(result.notification_id) is NotificationStatus.SENT

    stored = orchestrator.get(result.notification_id)
    assert stored.sent_at is not None
    assert stored.external_id == f"ext-{stored.id}"
    assert email_sender.calls[0][1].content == "Pedido\n\nOrder #123 confirmed"

    attempts = orchestrator.list_attempts(stored.id)
    assert [(a.status, a.attempt_number) for a in attempts] == [(NotificationStatus.SENT, 1)]


def test_transient_failure_is_retried_until_delivered(session_factory, settings, clock, make_user):
    sender = FakeSender(
        NotificationChannel.EMAIL,
        [SendResult.failed("503 Service Unavailable", retryable=True)],
        confirms_delivery=True,
    )
    orchestrator = _orchestrator(session_factory, settings, clock, sender)
    user = make_user()

    first = orchestrator.dispatch(_notification(user))

    assert first.status is NotificationStatus.RETRY
    assert first.scheduled_for == clock() + timedelta(seconds=225)
    assert orchestrator.process_due() == []

    clock.advance(seconds=225)
    results = orchestrator.process_due()

    assert [r.status for r in results] == [NotificationStatus.DELIVERED]
    stored = orchestrator.get(first.notification_id)
    assert stored.status is NotificationStatus.DELIVERED
    assert stored.delivered_at is not None
    assert stored.retry_count == 1
    attempts = orchestrator.list_attempts(stored.id)
    assert [(a.status, a.attempt_number) for a in attempts] == [
        (NotificationStatus.FAILED, 1),
        (NotificationStatus.DELIVERED, 2),
    ]


def test_retry_budget_is_bounded(session_factory, settings, clock, make_user):
    sender = FakeSender(NotificationChannel.EMAIL, default=TransientProviderFailure("timeout"))
    orchestrator = _orchestrator(session_factory, settings, clock, sender)
    user = make_user()

    first = orchestrator.dispatch(_notification(user, max_retries=3))
    last_results = []
    for _ in range(6):
        clock.advance(hours=1)
        results = orchestrator.process_due()
        if results:
            last_results = results

    stored = orchestrator.get(first.notification_id)
    assert len(sender.calls) == 4
    assert stored.status is NotificationStatus.FAILED
    assert stored.retry_count == 3
    assert last_results[0].error_code == "retry_exhausted"
    attempts = orchestrator.list_attempts(stored.id)
    assert [a.status for a in attempts] == [NotificationStatus.FAILED] * 4
    assert orchestrator.retry(stored.id) is False


def test_permanent_failure_can_be_retried_manually(orchestrator, email_sender, make_user):
    email_sender.outcomes.append(SendResult.failed("400 invalid recipient", retryable=False))
    user = make_user()

    failed = orchestrator.dispatch(_notification(user))

    assert failed.status is NotificationStatus.FAILED
    assert failed.error_code == "permanent_provider_failure"
    assert orchestrator.get(failed.notification_id).retry_count == 0

    assert orchestrator.retry(failed.notification_id) is True
    assert orchestrator.get_status(failed.notification_id) is NotificationStatus.RETRY

    results = orchestrator.process_due()

    assert [r.status for r in results] == [NotificationStatus.SENT]
    assert orchestrator.get(failed.notification_id).retry_count == 1


def test_opted_out_promotional_sms_is_cancelled(orchestrator, sms_sender, make_user, set_preference):
    user = make_user()
    set_preference(user, "PROMOTIONAL", "SMS", enabled=False)

    result = orchestrator.dispatch(
        _notification(user, channel=NotificationChannel.SMS, type=NotificationType.PROMOTIONAL)
    )

    assert result.status is NotificationStatus.CANCELLED
    assert result.error_code == "preference_denied"
    assert sms_sender.calls == []
    attempts = orchestrator.list_attempts(result.notification_id)
    assert attempts[0].status is NotificationStatus.CANCELLED
    assert "preference_denied" in attempts[0].error_message


def test_optional_type_without_preference_is_suppressed(orchestrator, make_user):
    user = make_user()

    result = orchestrator.dispatch(_notification(user, type=NotificationType.REMINDER))

    assert result.status is NotificationStatus.CANCELLED
    assert "no_preference" in result.error


def test_mandatory_type_ignores_opt_out(orchestrator, sms_sender, make_user, set_preference):
    user = make_user()
    set_preference(user, "TRANSACTIONAL", "SMS", enabled=False)

    result = orchestrator.dispatch(_notification(user, channel=NotificationChannel.SMS))

    assert result.status is NotificationStatus.SENT
    assert sms_sender.calls[0][1].content == "Order #123 confirmed"


def test_quiet_hours_defer_until_window_ends(orchestrator, email_sender, clock, make_user, set_preference):
    clock.set(datetime(2024, 5, 6, 23, 30, tzinfo=timezone.utc))
    user = make_user()
    set_preference(
        user,
        "TRANSACTIONAL",
        "EMAIL",
        quiet_hours_start=time(22, 0),
        quiet_hours_end=time(6, 0),
    )

    result = orchestrator.dispatch(_notification(user))

    assert result.status is NotificationStatus.PENDING
    assert result.scheduled_for == datetime(2024, 5, 7, 6, 0, tzinfo=timezone.utc)
    assert email_sender.calls == []
    attempts = orchestrator.list_attempts(result.notification_id)
    assert attempts[0].error_message == "deferred: quiet_hours"

    clock.set(datetime(2024, 5, 7, 6, 0, tzinfo=timezone.utc))
    results = orchestrator.process_due()

    assert [r.status for r in results] == [NotificationStatus.SENT]


def test_hourly_limit_suppresses_optional_notifications(orchestrator, make_user, set_preference):
    user = make_user()
    set_preference(user, "PROMOTIONAL", "EMAIL", max_per_hour=2)

    statuses = [
        orchestrator.dispatch(_notification(user, type=NotificationType.PROMOTIONAL)).status
        for _ in range(3)
    ]

    assert statuses == [
        NotificationStatus.SENT,
        NotificationStatus.SENT,
        NotificationStatus.CANCELLED,
    ]


def test_hourly_limit_defers_mandatory_notifications(orchestrator, clock, make_user, set_preference):
    user = make_user()
    set_preference(user, "TRANSACTIONAL", "EMAIL", max_per_hour=1)
    started = clock()

    first = orchestrator.dispatch(_notification(user))
    second = orchestrator.dispatch(_notification(user))

    assert first.status is NotificationStatus.SENT
    assert second.status is NotificationStatus.PENDING
    assert second.scheduled_for == started + timedelta(hours=1)

    clock.advance(hours=1)
    assert [r.status for r in orchestrator.process_due()] == [NotificationStatus.SENT]


def test_concurrent_dispatches_share_the_hourly_limit(
    session_factory, settings, clock, make_user, set_preference, store_notification
):
    sender = BlockingSender()
    orchestrator = _orchestrator(session_factory, settings, clock, sender)
    user = make_user()
    set_preference(user, "PROMOTIONAL", "EMAIL", max_per_hour=1)
    first_stored = store_notification(user, type=NotificationType.PROMOTIONAL)
    second_stored = store_notification(user, type=NotificationType.PROMOTIONAL)

    first, first_outcome = _run_in_thread(orchestrator.dispatch, first_stored)
    assert sender.entered.wait(timeout=5)
    second, second_outcome = _run_in_thread(orchestrator.dispatch, second_stored)
    time_module.sleep(0.1)
    sender.release.set()
    first.join(timeout=5)
    second.join(timeout=5)

    assert len(sender.calls) == 1
    assert first_outcome["result"].status is NotificationStatus.SENT
    assert second_outcome["result"].status is NotificationStatus.CANCELLED
    assert "hourly_limit" in second_outcome["result"].error


def test_failed_send_does_not_consume_the_hourly_limit(
    session_factory, settings, clock, make_user, set_preference
):
    sender = FakeSender(outcomes=[SendResult.failed("rejected", retryable=False)])
    orchestrator = _orchestrator(session_factory, settings, clock, sender)
    user = make_user()
    set_preference(user, "PROMOTIONAL", "EMAIL", max_per_hour=1)

    failed = orchestrator.dispatch(_notification(user, type=NotificationType.PROMOTIONAL))
    sent = orchestrator.dispatch(_notification(user, type=NotificationType.PROMOTIONAL))

    assert failed.status is NotificationStatus.FAILED
    assert sent.status is NotificationStatus.SENT


def test_denial_after_concurrent_cancel_is_not_logged(
    orchestrator, monkeypatch, make_user, set_preference, store_notification
):
    user = make_user()
    set_preference(user, "PROMOTIONAL", "EMAIL", enabled=False)
    stored = store_notification(user, type=NotificationType.PROMOTIONAL)
    original_find = NotificationPreferenceRepository.find

    def find_then_cancel(self, *args):
        preference = original_find(self, *args)
        orchestrator.cancel(stored.id)
        return preference

    monkeypatch.setattr(NotificationPreferenceRepository, "find", find_then_cancel)

    result = orchestrator.dispatch(stored)

    assert result.status is NotificationStatus.CANCELLED
    assert result.error_code == "already_processed"
    attempts = orchestrator.list_attempts(stored.id)
    assert [a.error_message for a in attempts] == ["Cancelada por el productor"]


def test_scheduled_notification_waits_for_its_time(orchestrator, email_sender, clock, make_user):
    user = make_user()

    notification_id = orchestrator.schedule(_notification(user), clock() + timedelta(hours=2))

    assert orchestrator.get_status(notification_id) is NotificationStatus.PENDING
    assert orchestrator.process_due() == []
    assert orchestrator.list_attempts(notification_id) == []

    clock.advance(hours=2)
    ScheduleWorker(orchestrator).run_once()

    assert orchestrator.get_status(notification_id) is NotificationStatus.SENT
    assert len(email_sender.calls) == 1


def test_queued_notification_for_unregistered_channel_fails(orchestrator, clock, make_user):
    user = make_user(push_token="device-token")

    notification_id = orchestrator.schedule(
        _notification(user, channel=NotificationChannel.PUSH), clock() + timedelta(minutes=5)
    )
    clock.advance(minutes=5)
    results = orchestrator.process_due()

    assert results[0].error_code == "unsupported_channel"
    assert orchestrator.get_status(notification_id) is NotificationStatus.FAILED


def test_dispatch_to_unregistered_channel_raises(orchestrator, make_user):
    user = make_user(push_token="device-token")

    with pytest.raises(UnsupportedChannel):
        orchestrator.dispatch(_notification(user, channel=NotificationChannel.PUSH))


def test_missing_destination_fails_without_calling_provider(orchestrator, sms_sender, make_user):
    user = make_user(phone=None)

    result = orchestrator.dispatch(_notification(user, channel=NotificationChannel.SMS))

    assert result.status is NotificationStatus.FAILED
    assert result.error_code == "invalid_destination"
    assert sms_sender.calls == []


@pytest.mark.parametrize(
    "overrides",
    [{"message": "   "}, {"user_id": 9999}, {"channel": "FAX"}, {"max_retries": -1}],
)
def test_invalid_notification_is_not_persisted(orchestrator, make_user, overrides):
    user = make_user()

    with pytest.raises(ValidationError):
        orchestrator.dispatch(_notification(user, **overrides))

    assert orchestrator.stats().total == 0


def test_inactive_user_is_rejected(orchestrator, make_user):
    user = make_user(is_active=False)

    with pytest.raises(ValidationError):
        orchestrator.dispatch(_notification(user))


def test_create_from_template_renders_pending_notification(orchestrator, email_sender, session, make_user):
    user = make_user()
    create_template(
        session,
        template_id="order_confirmed",
        channel="EMAIL",
        language="en",
        body="Order {{orderId}} confirmed",
    )

    notification_id = orchestrator.create_from_template(
        user.id, "order_confirmed", {"orderId": "123"}, NotificationChannel.EMAIL
    )

    stored = orchestrator.get(notification_id)
    assert stored.status is NotificationStatus.PENDING
    assert stored.message == "Order 123 confirmed"
    assert stored.template_id == "order_confirmed"
    assert stored.variables == {"orderId": "123"}
    assert stored.subject is None
    assert email_sender.calls == []

    assert orchestrator.dispatch(stored).status is NotificationStatus.SENT
    sent = email_sender.calls[0][1]
    assert sent.subject is None
    assert sent.content == "Order 123 confirmed"


def test_template_subject_is_sent_with_the_body(orchestrator, email_sender, session, make_user):
    user = make_user()
    create_template(
        session,
        template_id="order_shipped",
        channel="EMAIL",
        language="en",
        subject="Order {{orderId}}",
        body="Shipped today",
    )

    notification_id = orchestrator.create_from_template(
        user.id, "order_shipped", {"orderId": "123"}, NotificationChannel.EMAIL
    )
    orchestrator.dispatch(orchestrator.get(notification_id))

    sent = email_sender.calls[0][1]
    assert sent.subject == "Order 123"
    assert sent.content == "Order 123\n\nShipped today"


def test_create_from_template_errors(orchestrator, session, make_user):
    user = make_user()
    create_template(
        session, template_id="otp", channel="SMS", language="en", body="Code {{code}}"
    )

    with pytest.raises(MissingVariable):
        orchestrator.create_from_template(user.id, "otp", {}, NotificationChannel.SMS)
    with pytest.raises(TemplateNotFound):
        orchestrator.create_from_template(user.id, "otp", {"code": 1}, NotificationChannel.EMAIL)
    assert orchestrator.stats().total == 0


def test_cancel_withdraws_scheduled_notification(orchestrator, email_sender, clock, make_user):
    user = make_user()
    notification_id = orchestrator.schedule(_notification(user), clock() + timedelta(minutes=30))

    assert orchestrator.cancel(notification_id) is True
    assert orchestrator.cancel(notification_id) is False

    clock.advance(hours=1)
    assert orchestrator.process_due() == []
    assert email_sender.calls == []
    assert orchestrator.get_status(notification_id) is NotificationStatus.CANCELLED


def test_cancel_final_or_missing_notifications(orchestrator, make_user):
    user = make_user()
    sent = orchestrator.dispatch(_notification(user))

    assert orchestrator.cancel(sent.notification_id) is False
    with pytest.raises(NotificationNotFound):
        orchestrator.cancel(424242)
    with pytest.raises(NotificationNotFound):
        orchestrator.get_status(424242)


def test_cancel_during_send_reports_in_progress(session_factory, settings, clock, make_user):
    sender = BlockingSender()
    orchestrator = _orchestrator(session_factory, settings, clock, sender)
    user = make_user()
    stored = orchestrator.dispatch(_notification(user, scheduled_at=clock() + timedelta(days=1)))

    clock.advance(days=1)
    thread, outcome = _run_in_thread(orchestrator.process_due)
    try:
        assert sender.entered.wait(timeout=5)
        with pytest.raises(DispatchInProgress):
            orchestrator.cancel(stored.notification_id)
    finally:
        sender.release.set()
        thread.join(timeout=5)

    assert orchestrator.get_status(stored.notification_id) is NotificationStatus.SENT


def test_concurrent_dispatch_of_same_notification_sends_once(
    session_factory, settings, clock, make_user, store_notification
):
    sender = BlockingSender()
    orchestrator = _orchestrator(session_factory, settings, clock, sender)
    stored = store_notification(make_user())

    first, first_outcome = _run_in_thread(orchestrator.dispatch, stored)
    assert sender.entered.wait(timeout=5)
    second, second_outcome = _run_in_thread(orchestrator.dispatch, stored)
    time_module.sleep(0.1)
    sender.release.set()
    first.join(timeout=5)
    second.join(timeout=5)

    results = [first_outcome["result"], second_outcome["result"]]
    assert len(sender.calls) == 1
    assert sorted(r.error_code or "" for r in results) == ["", "already_processed"]
    assert all(r.status is NotificationStatus.SENT for r in results)


def test_lock_timeout_raises_dispatch_in_progress(
    session_factory, settings, clock, make_user, store_notification
):
    sender = BlockingSender()
    tuned = settings.model_copy(update={"dispatch_lock_timeout_seconds": 0.05})
    orchestrator = _orchestrator(session_factory, tuned, clock, sender)
    stored = store_notification(make_user())

    thread, _ = _run_in_thread(orchestrator.dispatch, stored)
    try:
        assert sender.entered.wait(timeout=5)
        with pytest.raises(DispatchInProgress):
            orchestrator.dispatch(stored)
    finally:
        sender.release.set()
        thread.join(timeout=5)


def test_slow_provider_counts_as_transient_failure(session_factory, settings, clock, make_user):
    sender = BlockingSender()
    tuned = settings.model_copy(update={"provider_timeout_seconds": 0.05})
    orchestrator = _orchestrator(session_factory, tuned, clock, sender)

    try:
        result = orchestrator.dispatch(_notification(make_user()))
    finally:
        sender.release.set()

    assert result.status is NotificationStatus.RETRY
    assert result.retryable is True


def test_batch_reports_each_user_independently(orchestrator, make_user):
    active = make_user()
    inactive = make_user(email="grace@example.com", is_active=False)

    results = orchestrator.dispatch_batch(
        [active.id, 9999, inactive.id],
        "Aviso",
        "Mantenimiento programado",
        NotificationChannel.EMAIL,
    )

    assert results[0].status is NotificationStatus.SENT
    assert [(r.notification_id, r.error_code) for r in results[1:]] == [
        (None, "validation_error"),
        (None, "validation_error"),
    ]
    assert orchestrator.stats().total == 1


def test_stats_counts_by_status(orchestrator, email_sender, clock, make_user):
    user = make_user()
    orchestrator.dispatch(_notification(user))
    orchestrator.dispatch(_notification(user, type=NotificationType.PROMOTIONAL))
    email_sender.outcomes.append(SendResult.failed("400", retryable=False))
    orchestrator.dispatch(_notification(user))
    orchestrator.schedule(_notification(user), clock() + timedelta(hours=1))

    stats = orchestrator.stats()

    assert (stats.total, stats.sent, stats.cancelled, stats.failed, stats.pending) == (4, 1, 1, 1, 1)
    assert orchestrator.stats(start=clock() + timedelta(minutes=1)).total == 0


def test_record_delivery_confirms_sent_notification(orchestrator, make_user, store_notification):
    user = make_user()
    sent = orchestrator.dispatch(_notification(user))
    pending = store_notification(user)

    delivered = orchestrator.record_delivery(sent.notification_id, "provider-99")

    assert delivered.status is NotificationStatus.DELIVERED
    assert delivered.external_id == "provider-99"
    assert orchestrator.record_delivery(sent.notification_id).status is NotificationStatus.DELIVERED
    with pytest.raises(ValidationError):
        orchestrator.record_delivery(pending.id)
    with pytest.raises(NotificationNotFound):
        orchestrator.record_delivery(424242)
