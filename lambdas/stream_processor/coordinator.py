# lambdas/stream_processor/coordinator.py
import asyncio
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from .classifier import classify_record
from .models import BatchResult, ChangeRecord, FanoutMessage
from .publisher import TopicPublisher
from .structured_log import StructuredLogger


class BatchProcessingError(Exception):
    """Raised after a batch was fully attempted and at least one record failed to publish."""

    def __init__(self, failures: List[BaseException], result: BatchResult):
        super().__init__(f"{len(failures)} records failed to process")
        self.failures = failures
        self.result = result


class BatchCoordinator:
    """
    Fans a stream batch out to the category topics.

    Every record is classified and published in its own task. All outcomes
    are collected before deciding: one failure fails the whole batch, and
    DynamoDB Streams then redelivers it. Records that were already published
    get published again on redelivery, so subscribers must tolerate duplicates.
    """

    def __init__(self, publisher: TopicPublisher, log: StructuredLogger, environment: Optional[str] = None):
        self.publisher = publisher
        self.log = log
        self.environment = environment

    def process_record(self, record: ChangeRecord) -> Optional[str]:
        """Classifies and publishes a single record. Returns the MessageId, or None if skipped."""
        category = classify_record(record)
        message = FanoutMessage.from_change_record(record, environment=self.environment)
        return self.publisher.publish(message, category)

    async def process_batch(self, records: Sequence[ChangeRecord]) -> BatchResult:
        """
        Processes all records concurrently and reports the combined outcome.

        Raises:
            BatchProcessingError: If one or more records failed to publish.
        """
        self.log.info("start", recordCount=len(records))

        # boto3 calls block, so every publish gets its own worker thread and
        # the whole batch is in flight at once.
        loop = asyncio.get_running_loop()
        executor = ThreadPoolExecutor(max_workers=max(1, len(records)))
        try:
            outcomes = await asyncio.gather(
                *(loop.run_in_executor(executor, self.process_record, record) for record in records),
                return_exceptions=True,
            )
        finally:
            executor.shutdown(wait=False)

        failures = [outcome for outcome in outcomes if isinstance(outcome, BaseException)]
        skipped = sum(1 for outcome in outcomes if outcome is None)
        result = BatchResult(
            processed=len(outcomes),
            published=len(outcomes) - skipped - len(failures),
            skipped=skipped,
            failed=len(failures),
        )

        if failures:
            self.log.error(
                "partial-failure",
                total=result.processed,
                succeeded=result.succeeded,
                failed=result.failed,
                errors=[f"{type(failure).__name__}: {failure}" for failure in failures],
            )
            raise BatchProcessingError(failures, result)

        self.log.info("complete", processed=result.processed, published=result.published, skipped=result.skipped)
        return result
