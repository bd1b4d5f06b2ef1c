"""
Sequential trade publisher.

Holds one aiokafka producer for the whole run and publishes one trade at a
time, awaiting the broker acknowledgement before returning. Failures are
reported and raised as PublishError; they are never retried.
"""

import asyncio
import logging
import time
from typing import Optional

from aiokafka import AIOKafkaProducer
from aiokafka.structs import RecordMetadata

from config.config import IngestConfig
from core.errors import BrokerConnectionError, PublishError, classify_kafka_error
from core.logging import get_logger, log_exception, log_with_context
from trade_ingest.schemas import TradeRecord

logger = get_logger(__name__)


class TradePublisher:
    """
    Async Kafka publisher for normalized trade records.

    Messages carry only a JSON value: no key, no headers and no explicit
    partition, so the broker's default partitioning applies.

    Usage:
        >>> publisher = TradePublisher(config)
        >>> async with publisher:
        ...     metadata = await publisher.publish(trade)
    """

    def __init__(self, config: IngestConfig):
        self.config = config
        self.topic = config.topic
        self._producer: Optional[AIOKafkaProducer] = None
        self._connected = False

    async def __aenter__(self) -> "TradePublisher":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        await self.disconnect()
        return False

    async def connect(self) -> None:
        """
        Start the underlying producer and connect to the brokers.

        Raises:
            BrokerConnectionError: If no bootstrap broker can be reached
        """
        if self._connected:
            logger.warning("Publisher already connected, ignoring duplicate connect call")
            return

        producer = AIOKafkaProducer(
            bootstrap_servers=self.config.brokers,
            client_id=self.config.client_id,
            acks=self.config.producer_acks(),
            request_timeout_ms=self.config.request_timeout_ms,
            **self.config.client_security_kwargs(),
        )

        try:
            await producer.start()
        except Exception as e:
            # aiokafka leaves its client half-open when start() fails
            try:
                await producer.stop()
            except Exception as stop_error:
                log_exception(
                    logger,
                    stop_error,
                    "Error releasing producer after failed connect",
                    level=logging.WARNING,
                    include_traceback=False,
                )
            raise BrokerConnectionError(
                f"Cannot connect producer to {self.config.bootstrap_servers}",
                brokers=self.config.brokers,
                cause=e,
            ) from e

        self._producer = producer
        self._connected = True

        log_with_context(
            logger,
            logging.INFO,
            "Producer connected",
            brokers=self.config.bootstrap_servers,
            client_id=self.config.client_id,
            acks=self.config.acks,
        )

    async def disconnect(self) -> None:
        """
        Flush and stop the producer.

        Safe to call multiple times. Errors are logged, not raised, so they
        never mask the outcome of the run.
        """
        if not self._connected or self._producer is None:
            logger.debug("Publisher not connected or already disconnected")
            return

        producer = self._producer
        self._producer = None
        self._connected = False

        try:
            await producer.flush()
        except Exception as e:
            log_exception(logger, e, "Error flushing producer")

        try:
            await producer.stop()
            logger.info("Producer disconnected")
        except Exception as e:
            log_exception(logger, e, "Error disconnecting producer")

    async def publish(self, record: TradeRecord) -> RecordMetadata:
        """
        Publish one trade and wait for the broker acknowledgement.

        Args:
            record: Normalized trade record

        Returns:
            RecordMetadata with topic, partition and offset

        Raises:
            RuntimeError: If called before connect()
            PublishError: If the broker rejects or fails to acknowledge the message
        """
        if not self._connected or self._producer is None:
            raise RuntimeError("Publisher not connected. Call connect() first.")

        value = record.to_message()
        start_time = time.perf_counter()

        try:
            metadata = await self._producer.send_and_wait(self.topic, value=value)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            category = classify_kafka_error(e)
            log_exception(
                logger,
                e,
                f"Error publishing trade: {record}",
                error_category=category,
                message_topic=self.topic,
                token_address=record.token_address,
                price_in_sol=record.price_in_sol,
                block_time=record.block_time,
            )
            raise PublishError(
                f"Failed to publish trade {record.token_address}",
                record=record,
                topic=self.topic,
                cause=e,
                category=category,
            ) from e

        log_with_context(
            logger,
            logging.INFO,
            f"Published: {record}",
            message_topic=metadata.topic,
            message_partition=metadata.partition,
            message_offset=metadata.offset,
            token_address=record.token_address,
            price_in_sol=record.price_in_sol,
            block_time=record.block_time,
            value_size=len(value),
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        return metadata

    @property
    def is_connected(self) -> bool:
        """Check if the publisher is connected and ready to publish."""
        return self._connected and self._producer is not None
