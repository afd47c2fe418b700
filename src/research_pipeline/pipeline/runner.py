"""Queue polling loop that feeds the research worker.

This plays the part of the invoking runtime: a normal return from the worker
acks the delivery, an exception releases it so the queue can redeliver it or
move it to the dead-letter channel.
"""

from __future__ import annotations

import argparse
import logging
import threading
from dataclasses import dataclass

from research_pipeline.pipeline.status import describe_error
from research_pipeline.pipeline.worker import ResearchWorker, WorkerOutcome
from research_pipeline.work_queue.base import WorkQueue
from research_pipeline.work_queue.models import QueueMessage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryResult:
    message_id: str
    receive_count: int
    outcome: WorkerOutcome | None = None
    error: Exception | None = None
    settled: bool = True

    @property
    def acked(self) -> bool:
        return self.error is None and self.settled


class QueueWorkerRunner:
    """Receive, process, then ack or release: one delivery per ``run_once``.

    A failed ack or release is logged and left to the queue: the lease expires
    and the message becomes visible again, so the worker's duplicate check
    absorbs a redelivery of an item that already finished.
    """

    def __init__(self, queue: WorkQueue, worker: ResearchWorker) -> None:
        self.queue = queue
        self.worker = worker

    def run_once(self) -> DeliveryResult | None:
        message = self.queue.receive()
        if message is None:
            return None
        logger.info(
            "queue_runner event=received message_id=%s receive_count=%d",
            message.message_id,
            message.receive_count,
        )
        try:
            outcome = self.worker.process(message.body)
        except Exception as exc:  # noqa: BLE001
            logger.exception(
                "queue_runner event=escalated message_id=%s receive_count=%d",
                message.message_id,
                message.receive_count,
            )
            settled = self._settle(message, "release", error=describe_error(exc))
            return DeliveryResult(
                message_id=message.message_id,
                receive_count=message.receive_count,
                error=exc,
                settled=settled,
            )
        settled = self._settle(message, "ack")
        return DeliveryResult(
            message_id=message.message_id,
            receive_count=message.receive_count,
            outcome=outcome,
            settled=settled,
        )

    def drain(self) -> list[DeliveryResult]:
        """Handle deliveries until the queue has nothing visible."""
        results: list[DeliveryResult] = []
        while (result := self.run_once()) is not None:
            results.append(result)
        return results

    def run_forever(self, stop_event: threading.Event, *, poll_interval_s: float) -> None:
        while not stop_event.is_set():
            try:
                handled = self.drain()
            except Exception:  # noqa: BLE001
                logger.exception("queue_runner event=poll_failed")
                handled = []
            if not handled:
                stop_event.wait(poll_interval_s)

    def _settle(self, message: QueueMessage, action: str, **kwargs: str) -> bool:
        try:
            getattr(self.queue, action)(message.message_id, **kwargs)
        except Exception:  # noqa: BLE001
            logger.exception(
                "queue_runner event=%s_failed message_id=%s",
                action,
                message.message_id,
            )
            return False
        return True


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the research queue worker.")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Drain the queue once and exit instead of polling.",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=None,
        help="Seconds to wait between polls of an empty queue.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level name.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    from research_pipeline.config.settings import get_settings
    from research_pipeline.runtime import build_task_storage, build_work_queue, build_worker

    args = _parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    settings = get_settings()
    storage = build_task_storage(settings)
    storage.migrate()
    queue = build_work_queue(settings)
    queue.migrate()
    runner = QueueWorkerRunner(queue, build_worker(settings, storage=storage))

    if args.once:
        results = runner.drain()
        failed = sum(1 for result in results if not result.acked)
        print(f"Deliveries handled: {len(results)}")
        print(f"Deliveries not acknowledged: {failed}")
        return

    stop_event = threading.Event()
    poll_interval_s = args.poll_interval or settings.worker_poll_interval_s
    try:
        runner.run_forever(stop_event, poll_interval_s=poll_interval_s)
    except KeyboardInterrupt:
        stop_event.set()


if __name__ == "__main__":
    main()
