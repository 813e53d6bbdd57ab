"""Delivery orchestrator: the owner of every notification status transition."""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from contextlib import ExitStack
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.domain.entities import (
    CANCELLABLE_STATUSES,
    DISPATCHABLE_STATUSES,
    SCHEDULE_REASON_DEFERRED,
    SCHEDULE_REASON_RETRY,
    SCHEDULE_REASON_SCHEDULED,
    DeliveryAttemptLog,
    DispatchResult,
    Notification,
    NotificationChannel,
    NotificationPriority,
    NotificationStats,
    NotificationStatus,
    NotificationType,
    PreferenceOutcome,
    RenderedContent,
    SendResult,
    User,
)
from app.domain.errors import (
    DispatchInProgress,
    NotificationError,
    NotificationNotFound,
    PermanentProviderFailure,
    PreferenceDenied,
    RetryExhausted,
    TransientProviderFailure,
    UnsupportedChannel,
    ValidationError,
)
from app.infrastructure.channels import ChannelSender, SenderRegistry
from app.infrastructure.repositories import (
    DeliveryAttemptLogRepository,
    NotificationPreferenceRepository,
    NotificationRepository,
    ScheduledDeliveryRepository,
    UserRepository,
)
from app.utils import ensure_app_timezone, now_in_app_timezone

from .backoff import retry_delay
from .locks import NotificationLockRegistry
from .preferences import PreferenceEvaluator
from .templating import compose_content, render_template, resolve_template
from .validators import (
    ensure_enum,
    ensure_recipient,
    ensure_template_key,
    normalize_notification,
)

logger = logging.getLogger(__name__)

ALREADY_PROCESSED = "already_processed"
INVALID_DESTINATION = "invalid_destination"


class DeliveryOrchestrator:
    """Validate, filter, render, send, record and retry notifications.

    Every operation opens its own session from ``session_factory``. Two
    dispatches of the same notification never interleave: an in-process lock
    per notification id serializes them and every status change is a guarded
    compare-and-set in the database. Deliveries to the same user and channel
    are serialized from preference evaluation until the attempt is recorded,
    so concurrent dispatches cannot both spend the last unit of a rate cap.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        registry: SenderRegistry,
        *,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
        locks: NotificationLockRegistry | None = None,
        worker_id: str | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._registry = registry
        self._settings = settings or get_settings()
        self._clock = clock or now_in_app_timezone
        self._locks = locks or NotificationLockRegistry()
        self._channel_locks = NotificationLockRegistry()
        self.worker_id = worker_id or f"worker-{uuid.uuid4().hex[:12]}"

    @property
    def settings(self) -> Settings:
        return self._settings

    # ------------------------------------------------------------------
    # Producer operations
    # ------------------------------------------------------------------
    def dispatch(self, notification: Notification) -> DispatchResult:
        """Dispatch ``notification``.

        New notifications (``id`` is ``None``) are validated and stored as
        PENDING first. Validation errors raise :class:`ValidationError` and
        nothing is persisted.
        """

        if notification.id is None:
            notification = self._create(notification)
        return self._dispatch_existing(notification.id)

    def dispatch_batch(
        self,
        user_ids: Sequence[int],
        title: str,
        message: str,
        channel: NotificationChannel,
        *,
        notification_type: NotificationType = NotificationType.TRANSACTIONAL,
        priority: NotificationPriority = NotificationPriority.MEDIUM,
    ) -> list[DispatchResult]:
        """Dispatch one notification per user. A failing item never aborts the batch."""

        if not user_ids:
            return []

        def dispatch_one(user_id: int) -> DispatchResult:
            try:
                created = self._create(
                    Notification(
                        id=None,
                        user_id=user_id,
                        title=title,
                        message=message,
                        channel=channel,
                        type=notification_type,
                        priority=priority,
                        max_retries=self._settings.default_max_retries,
                    )
                )
            except NotificationError as exc:
                return DispatchResult(
                    notification_id=None, status=None, error=str(exc), error_code=exc.code
                )
            try:
                return self._dispatch_existing(created.id)
            except NotificationError as exc:
                logger.warning("Batch item for user %s failed: %s", user_id, exc)
                return DispatchResult(
                    notification_id=created.id,
                    status=self._current_status(created.id),
                    error=str(exc),
                    error_code=exc.code,
                )

        workers = max(1, min(self._settings.batch_max_workers, len(user_ids)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="batch-dispatch") as executor:
            return list(executor.map(dispatch_one, user_ids))

    def schedule(self, notification: Notification, at: datetime) -> int:
        """Dispatch ``notification`` no earlier than ``at`` and return its id."""

        notification.scheduled_at = ensure_app_timezone(at)
        result = self.dispatch(notification)
        return result.notification_id

    def create_from_template(
        self,
        user_id: int,
        template_id: str,
        variables: Mapping[str, Any] | None,
        channel: NotificationChannel,
        *,
        notification_type: NotificationType | None = None,
        priority: NotificationPriority | None = None,
    ) -> int:
        """Render a stored template into a PENDING notification and return its id.

        The notification is not dispatched.
        """

        template_key = ensure_template_key(template_id)
        values = dict(variables or {})
        with self._session_factory() as session:
            user = UserRepository(session).get(user_id)
            if user is None:
                raise ValidationError(f"El usuario {user_id} no existe")
            channel = ensure_enum(NotificationChannel, channel, "canal")
            template = resolve_template(
                session,
                template_key,
                channel,
                languages=(user.locale, self._settings.default_language),
            )
            rendered = render_template(template, values)
            notification = Notification(
                id=None,
                user_id=user.id,
                title=rendered.subject or template_key,
                message=rendered.body,
                channel=channel,
                type=notification_type or NotificationType.TRANSACTIONAL,
                priority=priority or NotificationPriority.MEDIUM,
                template_id=template_key,
                subject=rendered.subject,
                variables=values,
                max_retries=self._settings.default_max_retries,
                created_at=self._now(),
            )
            normalize_notification(notification)
            created = NotificationRepository(session).create(notification)

        logger.info(
            "Notification %s created from template %s v%s",
            created.id,
            template.template_id,
            template.version,
        )
        return created.id

    def get(self, notification_id: int) -> Notification:
        with self._session_factory() as session:
            notification = NotificationRepository(session).get(notification_id)
        if notification is None:
            raise NotificationNotFound(f"La notificación {notification_id} no existe")
        return notification

    def get_status(self, notification_id: int) -> NotificationStatus:
        status = self._current_status(notification_id)
        if status is None:
            raise NotificationNotFound(f"La notificación {notification_id} no existe")
        return status

    def cancel(self, notification_id: int) -> bool:
        """Withdraw a PENDING or RETRY notification.

        Returns ``False`` when the notification already reached a final state
        and raises :class:`DispatchInProgress` while a delivery is running.
        """

        with self._session_factory() as session:
            repository = NotificationRepository(session)
            notification = repository.get(notification_id)
            if notification is None:
                raise NotificationNotFound(f"La notificación {notification_id} no existe")

            cancelled = repository.compare_and_set(
                notification_id,
                expected=CANCELLABLE_STATUSES,
                status=NotificationStatus.CANCELLED,
            )
            if not cancelled:
                current = repository.get_status(notification_id)
                if current is NotificationStatus.PROCESSING:
                    raise DispatchInProgress(
                        f"La notificación {notification_id} ya se está procesando"
                    )
                return False

            ScheduledDeliveryRepository(session).discard_for_notification(notification_id)
            self._append_log(
                session,
                notification,
                NotificationStatus.CANCELLED,
                error="Cancelada por el productor",
            )

        logger.info("Notification %s cancelled", notification_id)
        return True

    def retry(self, notification_id: int) -> bool:
        """Requeue a FAILED notification that still has retry budget."""

        with self._session_factory() as session:
            repository = NotificationRepository(session)
            notification = repository.get(notification_id)
            if notification is None:
                raise NotificationNotFound(f"La notificación {notification_id} no existe")
            if notification.status is not NotificationStatus.FAILED or not notification.can_retry():
                return False

            moved = repository.compare_and_set(
                notification_id,
                expected={NotificationStatus.FAILED},
                status=NotificationStatus.RETRY,
                retry_count=notification.retry_count + 1,
            )
            if not moved:
                return False
            ScheduledDeliveryRepository(session).enqueue(
                notification_id, self._now(), reason=SCHEDULE_REASON_RETRY
            )

        logger.info("Manual retry requested for notification %s", notification_id)
        return True

    def stats(self, start: datetime | None = None, end: datetime | None = None) -> NotificationStats:
        with self._session_factory() as session:
            counts = NotificationRepository(session).count_by_status(start=start, end=end)

        def count(*statuses: NotificationStatus) -> int:
            return sum(counts.get(status, 0) for status in statuses)

        return NotificationStats(
            total=sum(counts.values()),
            sent=count(NotificationStatus.SENT),
            delivered=count(NotificationStatus.DELIVERED),
            failed=count(NotificationStatus.FAILED),
            pending=count(
                NotificationStatus.PENDING,
                NotificationStatus.PROCESSING,
                NotificationStatus.RETRY,
            ),
            cancelled=count(NotificationStatus.CANCELLED),
        )

    def record_delivery(self, notification_id: int, external_id: str | None = None) -> Notification:
        """Apply a provider delivery receipt to a SENT notification."""

        with self._session_factory() as session:
            repository = NotificationRepository(session)
            changes: dict[str, Any] = {"delivered_at": self._now()}
            if external_id:
                changes["external_id"] = external_id
            moved = repository.compare_and_set(
                notification_id,
                expected={NotificationStatus.SENT},
                status=NotificationStatus.DELIVERED,
                **changes,
            )
            notification = repository.get(notification_id)

        if notification is None:
            raise NotificationNotFound(f"La notificación {notification_id} no existe")
        if not moved and notification.status is not NotificationStatus.DELIVERED:
            raise ValidationError(
                f"Solo se pueden confirmar notificaciones enviadas (estado actual: {notification.status.value})"
            )
        return notification

    def list_attempts(self, notification_id: int) -> list[DeliveryAttemptLog]:
        with self._session_factory() as session:
            if NotificationRepository(session).get_status(notification_id) is None:
                raise NotificationNotFound(f"La notificación {notification_id} no existe")
            return DeliveryAttemptLogRepository(session).list_for_notification(notification_id)

    # ------------------------------------------------------------------
    # Queue consumer
    # ------------------------------------------------------------------
    def process_due(self, now: datetime | None = None, *, limit: int | None = None) -> list[DispatchResult]:
        """Dispatch every queued entry whose due time has passed."""

        moment = now or self._now()
        stale_before = moment - timedelta(seconds=self._settings.queue_claim_timeout_seconds)
        with self._session_factory() as session:
            queue = ScheduledDeliveryRepository(session)
            released = queue.release_stale(stale_before)
            if released:
                logger.warning("Released %s abandoned queue claims", released)
            entries = queue.claim_due(
                moment,
                worker_id=self.worker_id,
                limit=limit or self._settings.worker_batch_size,
            )

        results: list[DispatchResult] = []
        for entry in entries:
            try:
                result = self._dispatch_existing(entry.notification_id, now=moment)
            except NotificationNotFound:
                logger.warning("Queued notification %s no longer exists", entry.notification_id)
            except DispatchInProgress:
                logger.info(
                    "Notification %s is owned by another dispatch; dropping queue entry %s",
                    entry.notification_id,
                    entry.id,
                )
            except (ValidationError, UnsupportedChannel) as exc:
                results.append(self._fail_from_queue(entry.notification_id, exc))
            except Exception:
                logger.exception(
                    "Unexpected error dispatching queued notification %s", entry.notification_id
                )
                continue
            else:
                results.append(result)
            self._complete_entry(entry.id)
        return results

    # ------------------------------------------------------------------
    # Dispatch pipeline
    # ------------------------------------------------------------------
    def _create(self, notification: Notification) -> Notification:
        normalize_notification(notification)
        with self._session_factory() as session:
            user = UserRepository(session).get(notification.user_id)
            ensure_recipient(user, notification.user_id)
            notification.status = NotificationStatus.PENDING
            notification.retry_count = 0
            notification.created_at = self._now()
            created = NotificationRepository(session).create(notification)
        logger.debug("Notification %s stored as PENDING", created.id)
        return created

    def _dispatch_existing(
        self, notification_id: int, *, now: datetime | None = None
    ) -> DispatchResult:
        with self._locks.hold(
            notification_id, timeout=self._settings.dispatch_lock_timeout_seconds
        ):
            with self._session_factory() as session:
                return self._run(session, notification_id, now or self._now())

    def _run(self, session: Session, notification_id: int, now: datetime) -> DispatchResult:
        repository = NotificationRepository(session)
        notification = repository.get(notification_id)
        if notification is None:
            raise NotificationNotFound(f"La notificación {notification_id} no existe")

        if notification.status not in DISPATCHABLE_STATUSES:
            return DispatchResult(
                notification_id=notification_id,
                status=notification.status,
                error="La notificación ya fue procesada",
                error_code=ALREADY_PROCESSED,
            )

        normalize_notification(notification)
        user = ensure_recipient(UserRepository(session).get(notification.user_id), notification.user_id)

        with ExitStack() as stack:
            try:
                stack.enter_context(
                    self._channel_locks.hold(
                        (user.id, notification.channel),
                        timeout=self._settings.dispatch_lock_timeout_seconds,
                        busy_message=(
                            f"Otro envío al usuario {user.id} por {notification.channel.value} "
                            "sigue en curso"
                        ),
                    )
                )
            except DispatchInProgress as exc:
                retry_at = now + timedelta(seconds=self._settings.provider_timeout_seconds)
                return self._postpone(
                    session, notification, retry_at, SCHEDULE_REASON_DEFERRED, str(exc)
                )
            return self._deliver(session, notification, user, now)

    def _deliver(
        self, session: Session, notification: Notification, user: User, now: datetime
    ) -> DispatchResult:
        notification_id = notification.id
        repository = NotificationRepository(session)
        preference = NotificationPreferenceRepository(session).find(
            user.id, notification.type, notification.channel
        )
        evaluator = PreferenceEvaluator(
            DeliveryAttemptLogRepository(session),
            opt_in_required=self._settings.preference_opt_in_required,
        )
        decision = evaluator.evaluate(notification, preference, now=now, timezone=user.timezone)

        if decision.outcome is PreferenceOutcome.DENY:
            return self._suppress(session, notification, decision.reason)

        due_at: datetime | None = None
        reason = SCHEDULE_REASON_SCHEDULED
        if decision.outcome is PreferenceOutcome.DEFER:
            due_at = decision.until
            reason = SCHEDULE_REASON_DEFERRED
        if notification.scheduled_at is not None and notification.scheduled_at > now:
            if due_at is None or notification.scheduled_at > due_at:
                due_at = notification.scheduled_at
        if due_at is not None:
            return self._postpone(session, notification, due_at, reason, decision.reason)

        sender = self._registry.resolve(notification.channel)
        if not sender.validate(notification, user):
            return self._reject_destination(session, notification)

        claimed = repository.compare_and_set(
            notification_id,
            expected=DISPATCHABLE_STATUSES,
            status=NotificationStatus.PROCESSING,
        )
        if not claimed:
            return DispatchResult(
                notification_id=notification_id,
                status=repository.get_status(notification_id),
                error="La notificación cambió de estado durante el envío",
                error_code=ALREADY_PROCESSED,
            )

        content = compose_content(
            notification.channel, notification.delivery_subject, notification.message
        )
        started = time.monotonic()
        result = self._call_sender(sender, notification, user, content)
        duration_ms = int((time.monotonic() - started) * 1000)

        if result.success:
            return self._complete_success(session, notification, sender, result, duration_ms)
        return self._handle_failure(session, notification, result, duration_ms)

    def _call_sender(
        self,
        sender: ChannelSender,
        notification: Notification,
        user: User,
        content: RenderedContent,
    ) -> SendResult:
        """Run ``sender.send`` bounded by the provider timeout.

        A call that overruns is reported as a transient failure but its worker
        thread is not interrupted. The senders apply the same timeout to their
        own HTTP clients so the request is normally aborted as well. A request
        that the provider accepted right at the limit can still go out, and
        its retry then delivers the notification a second time.
        """

        timeout = self._settings.provider_timeout_seconds
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="provider-send")
        try:
            future = executor.submit(sender.send, notification, user, content)
            return future.result(timeout=timeout)
        except FutureTimeoutError:
            logger.warning(
                "Provider call for notification %s exceeded %.1fs", notification.id, timeout
            )
            return SendResult.failed(
                f"El proveedor no respondió en {timeout:g} segundos", retryable=True
            )
        except (TransientProviderFailure, PermanentProviderFailure) as exc:
            return SendResult.failed(str(exc) or exc.code, retryable=exc.retryable)
        except Exception as exc:
            logger.exception(
                "Unexpected error from the %s sender for notification %s",
                notification.channel.value,
                notification.id,
            )
            return SendResult.failed(f"Error inesperado del proveedor: {exc}", retryable=True)
        finally:
            executor.shutdown(wait=False)

    def _complete_success(
        self,
        session: Session,
        notification: Notification,
        sender: ChannelSender,
        result: SendResult,
        duration_ms: int,
    ) -> DispatchResult:
        sent_at = self._now()
        status = NotificationStatus.DELIVERED if sender.confirms_delivery else NotificationStatus.SENT
        changes: dict[str, Any] = {
            "sent_at": sent_at,
            "external_id": result.external_id,
            "error_message": None,
        }
        if status is NotificationStatus.DELIVERED:
            changes["delivered_at"] = sent_at
        NotificationRepository(session).compare_and_set(
            notification.id,
            expected={NotificationStatus.PROCESSING},
            status=status,
            **changes,
        )
        self._append_log(session, notification, status, duration_ms=duration_ms)
        logger.info(
            "Notification %s %s via %s on attempt %s",
            notification.id,
            status.value,
            notification.channel.value,
            notification.attempt_number,
        )
        return DispatchResult(notification_id=notification.id, status=status)

    def _handle_failure(
        self,
        session: Session,
        notification: Notification,
        result: SendResult,
        duration_ms: int,
    ) -> DispatchResult:
        error = result.error or "El proveedor rechazó el envío"
        repository = NotificationRepository(session)
        self._append_log(
            session,
            notification,
            NotificationStatus.FAILED,
            error=error,
            duration_ms=duration_ms,
        )

        if result.retryable and notification.can_retry():
            retry_number = notification.retry_count + 1
            due_at = self._now() + retry_delay(notification.priority, retry_number, self._settings)
            repository.compare_and_set(
                notification.id,
                expected={NotificationStatus.PROCESSING},
                status=NotificationStatus.RETRY,
                retry_count=retry_number,
                error_message=error,
            )
            ScheduledDeliveryRepository(session).enqueue(
                notification.id, due_at, reason=SCHEDULE_REASON_RETRY
            )
            logger.warning(
                "Notification %s failed (%s); retry %s/%s at %s",
                notification.id,
                error,
                retry_number,
                notification.max_retries,
                due_at.isoformat(),
            )
            return DispatchResult(
                notification_id=notification.id,
                status=NotificationStatus.RETRY,
                scheduled_for=due_at,
                error=error,
                error_code=TransientProviderFailure.code,
                retryable=True,
            )

        error_code = RetryExhausted.code if result.retryable else PermanentProviderFailure.code
        repository.compare_and_set(
            notification.id,
            expected={NotificationStatus.PROCESSING},
            status=NotificationStatus.FAILED,
            error_message=error,
        )
        logger.error(
            "Notification %s failed permanently after %s attempt(s): %s",
            notification.id,
            notification.attempt_number,
            error,
        )
        return DispatchResult(
            notification_id=notification.id,
            status=NotificationStatus.FAILED,
            error=error,
            error_code=error_code,
        )

    def _suppress(
        self, session: Session, notification: Notification, reason: str | None
    ) -> DispatchResult:
        error = f"{PreferenceDenied.code}: {reason}"
        repository = NotificationRepository(session)
        moved = repository.compare_and_set(
            notification.id,
            expected=DISPATCHABLE_STATUSES,
            status=NotificationStatus.CANCELLED,
            error_message=error,
        )
        if not moved:
            return DispatchResult(
                notification_id=notification.id,
                status=repository.get_status(notification.id),
                error="La notificación cambió de estado durante el envío",
                error_code=ALREADY_PROCESSED,
            )
        ScheduledDeliveryRepository(session).discard_for_notification(notification.id)
        self._append_log(session, notification, NotificationStatus.CANCELLED, error=error)
        logger.info("Notification %s suppressed by user preferences (%s)", notification.id, reason)
        return DispatchResult(
            notification_id=notification.id,
            status=NotificationStatus.CANCELLED,
            error=error,
            error_code=PreferenceDenied.code,
        )

    def _postpone(
        self,
        session: Session,
        notification: Notification,
        due_at: datetime,
        reason: str,
        detail: str | None,
    ) -> DispatchResult:
        due_at = ensure_app_timezone(due_at)
        ScheduledDeliveryRepository(session).enqueue(notification.id, due_at, reason=reason)
        if reason == SCHEDULE_REASON_DEFERRED:
            self._append_log(
                session,
                notification,
                notification.status,
                error=f"deferred: {detail}",
            )
        logger.info(
            "Notification %s %s until %s", notification.id, reason, due_at.isoformat()
        )
        return DispatchResult(
            notification_id=notification.id,
            status=notification.status,
            scheduled_for=due_at,
        )

    def _reject_destination(self, session: Session, notification: Notification) -> DispatchResult:
        error = f"El usuario no tiene un destino válido para el canal {notification.channel.value}"
        NotificationRepository(session).compare_and_set(
            notification.id,
            expected=DISPATCHABLE_STATUSES,
            status=NotificationStatus.FAILED,
            error_message=error,
        )
        self._append_log(session, notification, NotificationStatus.FAILED, error=error)
        logger.info("Notification %s rejected: %s", notification.id, error)
        return DispatchResult(
            notification_id=notification.id,
            status=NotificationStatus.FAILED,
            error=error,
            error_code=INVALID_DESTINATION,
        )

    def _fail_from_queue(self, notification_id: int, exc: NotificationError) -> DispatchResult:
        with self._session_factory() as session:
            repository = NotificationRepository(session)
            notification = repository.get(notification_id)
            if notification is None:
                return DispatchResult(
                    notification_id=notification_id, status=None, error=str(exc), error_code=exc.code
                )
            moved = repository.compare_and_set(
                notification_id,
                expected=DISPATCHABLE_STATUSES,
                status=NotificationStatus.FAILED,
                error_message=str(exc),
            )
            if moved:
                self._append_log(session, notification, NotificationStatus.FAILED, error=str(exc))
            status = repository.get_status(notification_id)
        logger.error("Queued notification %s could not be dispatched: %s", notification_id, exc)
        return DispatchResult(
            notification_id=notification_id, status=status, error=str(exc), error_code=exc.code
        )

    def _complete_entry(self, entry_id: int) -> None:
        with self._session_factory() as session:
            ScheduledDeliveryRepository(session).complete(entry_id)

    def _append_log(
        self,
        session: Session,
        notification: Notification,
        status: NotificationStatus,
        *,
        error: str | None = None,
        duration_ms: int = 0,
    ) -> DeliveryAttemptLog:
        return DeliveryAttemptLogRepository(session).append(
            DeliveryAttemptLog(
                id=None,
                notification_id=notification.id,
                user_id=notification.user_id,
                channel=notification.channel,
                status=status,
                error_message=error,
                attempt_number=notification.attempt_number,
                duration_ms=duration_ms,
                created_at=self._now(),
            )
        )

    def _current_status(self, notification_id: int) -> NotificationStatus | None:
        with self._session_factory() as session:
            return NotificationRepository(session).get_status(notification_id)

    def _now(self) -> datetime:
        return ensure_app_timezone(self._clock())


__all__ = ["ALREADY_PROCESSED", "DeliveryOrchestrator", "INVALID_DESTINATION"]
