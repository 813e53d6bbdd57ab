"""Persistence layer for the retry/schedule queue."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from app.domain.entities import ScheduledDelivery
from app.infrastructure.models import ScheduledDeliveryModel
from app.utils import ensure_app_naive_datetime, ensure_app_timezone, now_in_app_timezone


class ScheduledDeliveryRepository:
    """Admission, claiming and completion of queued deliveries.

    A notification owns at most one unclaimed entry: enqueueing replaces any
    entry still waiting. Claims are taken with a guarded ``UPDATE`` so two
    workers never process the same entry.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def enqueue(self, notification_id: int, due_at: datetime, *, reason: str) -> ScheduledDelivery:
        (
            self.session.query(ScheduledDeliveryModel)
            .filter(ScheduledDeliveryModel.notification_id == notification_id)
            .filter(ScheduledDeliveryModel.claimed_at.is_(None))
            .delete(synchronize_session=False)
        )
        model = ScheduledDeliveryModel(
            notification_id=notification_id,
            due_at=ensure_app_naive_datetime(due_at),
            reason=reason,
            created_at=ensure_app_naive_datetime(now_in_app_timezone()),
        )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def claim_due(self, now: datetime, *, worker_id: str, limit: int = 50) -> list[ScheduledDelivery]:
        """Claim up to ``limit`` entries whose ``due_at`` has passed."""

        naive_now = ensure_app_naive_datetime(now)
        candidates = (
            self.session.query(ScheduledDeliveryModel.id)
            .filter(ScheduledDeliveryModel.claimed_at.is_(None))
            .filter(ScheduledDeliveryModel.due_at <= naive_now)
            .order_by(ScheduledDeliveryModel.due_at, ScheduledDeliveryModel.id)
            .limit(limit)
            .all()
        )
        claimed: list[ScheduledDelivery] = []
        for (entry_id,) in candidates:
            updated = (
                self.session.query(ScheduledDeliveryModel)
                .filter(ScheduledDeliveryModel.id == entry_id)
                .filter(ScheduledDeliveryModel.claimed_at.is_(None))
                .update(
                    {
                        ScheduledDeliveryModel.claimed_by: worker_id,
                        ScheduledDeliveryModel.claimed_at: naive_now,
                    },
                    synchronize_session=False,
                )
            )
            self.session.commit()
            if updated != 1:
                continue
            model = self.session.get(ScheduledDeliveryModel, entry_id)
            if model is not None:
                self.session.refresh(model)
                claimed.append(self._to_entity(model))
        return claimed

    def complete(self, entry_id: int) -> None:
        (
            self.session.query(ScheduledDeliveryModel)
            .filter(ScheduledDeliveryModel.id == entry_id)
            .delete(synchronize_session=False)
        )
        self.session.commit()

    def discard_for_notification(self, notification_id: int) -> int:
        """Drop waiting entries of ``notification_id`` and return how many were removed."""

        removed = (
            self.session.query(ScheduledDeliveryModel)
            .filter(ScheduledDeliveryModel.notification_id == notification_id)
            .filter(ScheduledDeliveryModel.claimed_at.is_(None))
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return removed

    def release_stale(self, older_than: datetime) -> int:
        """Return abandoned claims to the queue."""

        released = (
            self.session.query(ScheduledDeliveryModel)
            .filter(ScheduledDeliveryModel.claimed_at.is_not(None))
            .filter(ScheduledDeliveryModel.claimed_at < ensure_app_naive_datetime(older_than))
            .update(
                {
                    ScheduledDeliveryModel.claimed_by: None,
                    ScheduledDeliveryModel.claimed_at: None,
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return released

    def list_for_notification(self, notification_id: int) -> list[ScheduledDelivery]:
        query = (
            self.session.query(ScheduledDeliveryModel)
            .filter(ScheduledDeliveryModel.notification_id == notification_id)
            .order_by(ScheduledDeliveryModel.due_at)
        )
        return [self._to_entity(model) for model in query.all()]

    @staticmethod
    def _to_entity(model: ScheduledDeliveryModel) -> ScheduledDelivery:
        return ScheduledDelivery(
            id=model.id,
            notification_id=model.notification_id,
            due_at=ensure_app_timezone(model.due_at),
            reason=model.reason,
            claimed_by=model.claimed_by,
            claimed_at=ensure_app_timezone(model.claimed_at),
            created_at=ensure_app_timezone(model.created_at),
        )


__all__ = ["ScheduledDeliveryRepository"]
