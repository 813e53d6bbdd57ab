"""Run the retry/schedule queue worker as a standalone process."""

from __future__ import annotations

import argparse
import logging
import signal
import threading

from app.application.use_cases.notifications import DeliveryOrchestrator
from app.application.worker import ScheduleWorker
from app.config import get_settings
from app.infrastructure.channels import build_default_registry
from app.infrastructure.database import SessionLocal, initialize_database


def parse_args() -> argparse.Namespace:
    """Parse command line arguments for the worker."""

    settings = get_settings()
    parser = argparse.ArgumentParser(
        description="Consume the notification retry/schedule queue.",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=settings.worker_poll_interval_seconds,
        help="Segundos de espera entre consultas a la cola",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=settings.worker_batch_size,
        help="Cantidad máxima de entregas reclamadas por iteración",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Procesa una sola tanda de entregas vencidas y termina.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser.parse_args()


def main() -> None:
    """Start the worker and block until SIGINT/SIGTERM."""

    args = parse_args()
    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = get_settings()
    initialize_database()
    orchestrator = DeliveryOrchestrator(
        SessionLocal, build_default_registry(settings), settings=settings
    )
    worker = ScheduleWorker(
        orchestrator, poll_interval=args.poll_interval, batch_size=args.batch_size
    )

    if args.once:
        handled = worker.run_once()
        print(f"Entregas procesadas: {handled}")
        return

    stop = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logging.getLogger(__name__).info("Received signal %s, stopping worker", signum)
        stop.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    worker.start()
    try:
        stop.wait()
    finally:
        worker.stop()


if __name__ == "__main__":
    main()
