"""Per-record batch execution with failure isolation, a run deadline, and bounded parallelism"""

import logging
import time
import uuid
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence

from smartspend_scheduler.domain.models import RunReport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DueRecord:
    """Lightweight handle on a record selected by a scan"""

    id: uuid.UUID
    owner_id: uuid.UUID
    label: str
    tag: Optional[str] = None


def run_batch(
    job: str,
    records: Sequence[DueRecord],
    handler: Callable[[DueRecord], None],
    *,
    on_error: Optional[Callable[[DueRecord, Exception], None]] = None,
    deadline_seconds: Optional[float] = None,
    max_workers: int = 1,
) -> RunReport:
    """
    Run ``handler`` once per record and tally the outcome.

    - A handler exception marks that record failed, is logged, and is passed
      to ``on_error``; the remaining records still run.
    - Once ``deadline_seconds`` has elapsed no new record is started. Records
      already in flight finish; the rest are counted as skipped.
    - ``max_workers`` > 1 processes records on a thread pool. Each record is
      handled by exactly one worker.
    """
    if max_workers < 1:
        raise ValueError("max_workers must be a positive integer")

    report = RunReport(job=job, selected=len(records))
    started = time.monotonic()

    def expired() -> bool:
        return deadline_seconds is not None and time.monotonic() - started >= deadline_seconds

    def process(record: DueRecord) -> bool:
        try:
            handler(record)
            return True
        except Exception as e:  # noqa: BLE001
            logger.exception(
                "Record processing failed",
                extra={"job": job, "record_id": str(record.id), "owner_id": str(record.owner_id)},
            )
            if on_error is not None:
                try:
                    on_error(record, e)
                except Exception:  # noqa: BLE001
                    logger.exception("Failure report failed", extra={"job": job, "record_id": str(record.id)})
            return False

    def tally(record: DueRecord, ok: bool) -> None:
        if ok:
            report.succeeded += 1
        else:
            report.failed += 1
            report.failed_ids.append(str(record.id))

    if max_workers == 1:
        for index, record in enumerate(records):
            if expired():
                report.skipped = len(records) - index
                break
            tally(record, process(record))
    else:
        pending = iter(records)
        submitted = 0
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            active: Dict[Future, DueRecord] = {}

            def submit_next() -> bool:
                nonlocal submitted
                if expired():
                    return False
                record = next(pending, None)
                if record is None:
                    return False
                active[pool.submit(process, record)] = record
                submitted += 1
                return True

            # Prime the window
            for _ in range(max_workers):
                if not submit_next():
                    break

            while active:
                done, _ = wait(active, return_when=FIRST_COMPLETED)
                for fut in done:
                    tally(active.pop(fut), fut.result())
                for _ in range(len(done)):
                    if not submit_next():
                        break

        report.skipped = len(records) - submitted

    if report.skipped:
        logger.warning(
            "Job deadline reached; remaining records left for the next run",
            extra={"job": job, "skipped": report.skipped, "deadline_seconds": deadline_seconds},
        )
    return report
