"""
Trade ingestion pipeline orchestrator.

Sequences one run:

    Idle -> Provisioning -> Connecting -> Draining -> Publishing
         -> Disconnecting -> Succeeded | Failed

Provisioning, connection and source-read failures are fatal. A failed
publish is reported by the publisher and the run moves on to the next
record. Records are published strictly one at a time, in file order.

In streaming mode (the default) each row is read, normalized and
published before the next row is read, so the Draining state is skipped.
In drain mode the whole file is normalized into memory first; a source
error then means nothing was published.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Callable, Iterable, List, Mapping, Optional

from config.config import IngestConfig
from core.errors import PipelineError, PublishError, SourceReadError
from core.logging import get_logger, log_exception, log_with_context, set_log_context
from trade_ingest.normalizer import invalid_price, normalize_row
from trade_ingest.provisioner import TopicProvisioner
from trade_ingest.publisher import TradePublisher
from trade_ingest.schemas import TradeRecord
from trade_ingest.source import CsvRecordSource

logger = get_logger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


class PipelineState(str, Enum):
    IDLE = "idle"
    PROVISIONING = "provisioning"
    CONNECTING = "connecting"
    DRAINING = "draining"
    PUBLISHING = "publishing"
    DISCONNECTING = "disconnecting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class PipelineResult:
    """Outcome of one run."""

    state: PipelineState = PipelineState.IDLE
    rows_read: int = 0
    published: int = 0
    failed: int = 0
    error: Optional[PipelineError] = None

    @property
    def succeeded(self) -> bool:
        return self.state is PipelineState.SUCCEEDED

    @property
    def exit_code(self) -> int:
        return EXIT_SUCCESS if self.succeeded else EXIT_FAILURE


class TradeIngestPipeline:
    """
    One-shot CSV to topic ingestion run.

    Collaborators default to the real implementations built from config;
    tests pass their own.

    Usage:
        >>> result = await TradeIngestPipeline(config).run()
        >>> sys.exit(result.exit_code)
    """

    def __init__(
        self,
        config: IngestConfig,
        source: Optional[Iterable[Mapping[str, str]]] = None,
        provisioner: Optional[TopicProvisioner] = None,
        publisher: Optional[TradePublisher] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.config = config
        self.source = source if source is not None else CsvRecordSource(
            config.source_path,
            delimiter=config.delimiter,
            encoding=config.encoding,
        )
        self.provisioner = provisioner or TopicProvisioner(config)
        self.publisher = publisher or TradePublisher(config)
        self._clock = clock or (lambda: datetime.now(UTC))
        self.result = PipelineResult()

    def _transition(self, state: PipelineState) -> None:
        logger.debug(f"Pipeline state {self.result.state.value} -> {state.value}")
        self.result.state = state

    async def run(self) -> PipelineResult:
        """
        Execute the run once.

        Returns:
            PipelineResult; state is SUCCEEDED or FAILED
        """
        set_log_context(topic=self.config.topic)
        failed_in: Optional[PipelineState] = None

        try:
            self._transition(PipelineState.PROVISIONING)
            await self.provisioner.ensure_topic()

            self._transition(PipelineState.CONNECTING)
            await self.publisher.connect()
            try:
                if self.config.streaming:
                    await self._stream_and_publish()
                else:
                    records = await self._drain()
                    await self._publish_all(records)
            except PipelineError:
                failed_in = self.result.state
                raise
            finally:
                self._transition(PipelineState.DISCONNECTING)
                await self.publisher.disconnect()

        except PipelineError as e:
            self.result.error = e
            failed_in = failed_in or self.result.state
            self._transition(PipelineState.FAILED)
            self._report_fatal(e, failed_in)
            return self.result

        self._transition(PipelineState.SUCCEEDED)
        log_with_context(
            logger,
            logging.INFO,
            "All trades ingested from CSV",
            rows_read=self.result.rows_read,
            message_topic=self.config.topic,
        )
        return self.result

    def _normalize(self, row: Mapping[str, str]) -> TradeRecord:
        self.result.rows_read += 1

        raw_price = invalid_price(row)
        if raw_price is not None:
            log_with_context(
                logger,
                logging.WARNING,
                f"Row {self.result.rows_read}: price_in_sol {raw_price!r} is not a number, using 0",
                raw_value=raw_price,
                token_address=row.get("token_address"),
            )

        return normalize_row(row, now=self._clock())

    def _log_rows_read(self) -> None:
        log_with_context(
            logger,
            logging.INFO,
            f"Read {self.result.rows_read} trades from CSV",
            rows_read=self.result.rows_read,
            source_path=self.config.source_path,
        )

    async def _drain(self) -> List[TradeRecord]:
        self._transition(PipelineState.DRAINING)
        records = await asyncio.to_thread(
            lambda: [self._normalize(row) for row in self.source]
        )
        self._log_rows_read()
        return records

    async def _publish_all(self, records: List[TradeRecord]) -> None:
        self._transition(PipelineState.PUBLISHING)
        for record in records:
            await self._publish_one(record)

    async def _stream_and_publish(self) -> None:
        self._transition(PipelineState.PUBLISHING)
        rows = await asyncio.to_thread(iter, self.source)
        while True:
            row = await asyncio.to_thread(next, rows, None)
            if row is None:
                break
            await self._publish_one(self._normalize(row))
        self._log_rows_read()

    async def _publish_one(self, record: TradeRecord) -> None:
        try:
            await self.publisher.publish(record)
        except PublishError:
            # Already reported by the publisher; the batch continues
            self.result.failed += 1
        else:
            self.result.published += 1

    def _report_fatal(self, error: PipelineError, failed_in: PipelineState) -> None:
        if isinstance(error, SourceReadError):
            msg = "Error reading CSV"
            if self.result.published or self.result.failed:
                msg = (
                    f"Error reading CSV after {self.result.published + self.result.failed} "
                    f"trades were sent"
                )
        elif failed_in is PipelineState.PROVISIONING:
            msg = "Error provisioning topic"
        elif failed_in is PipelineState.CONNECTING:
            msg = "Error connecting producer"
        else:
            msg = "Error in ingestion pipeline"

        log_exception(
            logger,
            error,
            msg,
            include_traceback=False,
            state=failed_in.value,
            rows_read=self.result.rows_read,
        )


async def run_pipeline(config: IngestConfig) -> PipelineResult:
    """Build the pipeline from config and run it once."""
    return await TradeIngestPipeline(config).run()
