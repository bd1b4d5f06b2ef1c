"""
Destination topic provisioning.

Creates the trade topic with a fixed partition/replication layout before
anything is published. An existing topic counts as success. After the
create request the provisioner polls topic metadata until every partition
has a leader, so the first publish does not race topic availability.
"""

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

from aiokafka.admin import AIOKafkaAdminClient, NewTopic
from aiokafka.errors import TopicAlreadyExistsError, for_code

from config.config import IngestConfig
from core.errors import ErrorCategory, ProvisionError, classify_kafka_error
from core.logging import get_logger, log_exception, log_with_context

logger = get_logger(__name__)

# Metadata error codes that only mean "not ready yet" while leaders are elected
_PENDING_ERROR_CODES = frozenset(
    {
        3,  # UNKNOWN_TOPIC_OR_PARTITION
        5,  # LEADER_NOT_AVAILABLE
    }
)


class TopicProvisioner:
    """
    Idempotent creator of the destination topic.

    Usage:
        >>> provisioner = TopicProvisioner(config)
        >>> created = await provisioner.ensure_topic()
    """

    def __init__(self, config: IngestConfig):
        self.config = config

    def _create_admin_client(self) -> AIOKafkaAdminClient:
        return AIOKafkaAdminClient(
            bootstrap_servers=self.config.brokers,
            client_id=self.config.client_id,
            request_timeout_ms=self.config.request_timeout_ms,
            **self.config.client_security_kwargs(),
        )

    async def ensure_topic(self) -> bool:
        """
        Ensure the destination topic exists and has partition leaders.

        Returns:
            True if the topic was created, False if it already existed

        Raises:
            ProvisionError: If the broker is unreachable, rejects the create
                request for any reason other than "already exists", or no
                leaders appear before leader_wait_timeout_ms
        """
        topic = self.config.topic
        log_with_context(
            logger,
            logging.INFO,
            "Provisioning topic",
            message_topic=topic,
            partitions=self.config.partitions,
            replication_factor=self.config.replication_factor,
            brokers=self.config.bootstrap_servers,
        )

        admin = self._create_admin_client()
        try:
            await admin.start()
        except Exception as e:
            await self._close(admin)
            raise ProvisionError(
                f"Cannot connect admin client to {self.config.bootstrap_servers}",
                topic=topic,
                cause=e,
                category=classify_kafka_error(e),
            ) from e

        try:
            created = await self._create_topic(admin)
            await self._wait_for_leaders(admin)
        finally:
            await self._close(admin)

        log_with_context(
            logger,
            logging.INFO,
            "Topic created" if created else "Topic already exists",
            message_topic=topic,
        )
        return created

    async def _create_topic(self, admin: AIOKafkaAdminClient) -> bool:
        topic = self.config.topic
        new_topic = NewTopic(
            name=topic,
            num_partitions=self.config.partitions,
            replication_factor=self.config.replication_factor,
        )

        try:
            response = await admin.create_topics(
                [new_topic], timeout_ms=self.config.request_timeout_ms
            )
        except TopicAlreadyExistsError:
            return False
        except Exception as e:
            raise ProvisionError(
                f"Failed to create topic {topic}",
                topic=topic,
                cause=e,
                category=classify_kafka_error(e),
            ) from e

        created = True
        for topic_error in getattr(response, "topic_errors", None) or []:
            name, error_code = topic_error[0], topic_error[1]
            if name != topic or error_code == 0:
                continue

            error_type = for_code(error_code)
            if error_type is TopicAlreadyExistsError:
                created = False
                continue

            error_message = topic_error[2] if len(topic_error) > 2 else None
            error = error_type(error_message) if error_message else error_type()
            raise ProvisionError(
                f"Broker rejected creation of topic {topic}",
                topic=topic,
                cause=error,
                category=classify_kafka_error(error),
            )

        return created

    async def _wait_for_leaders(self, admin: AIOKafkaAdminClient) -> None:
        topic = self.config.topic
        timeout_s = self.config.leader_wait_timeout_ms / 1000
        poll_interval_s = self.config.leader_poll_interval_ms / 1000
        deadline = time.monotonic() + timeout_s
        attempt = 0

        while True:
            attempt += 1
            try:
                metadata = await admin.describe_topics([topic])
            except Exception as e:
                raise ProvisionError(
                    f"Failed to describe topic {topic}",
                    topic=topic,
                    cause=e,
                    category=classify_kafka_error(e),
                ) from e

            if self._leaders_ready(metadata, topic):
                logger.debug(f"Leaders available for {topic} after {attempt} metadata request(s)")
                return

            if time.monotonic() >= deadline:
                raise ProvisionError(
                    f"Leaders for topic {topic} not available after {timeout_s:g}s",
                    topic=topic,
                    category=ErrorCategory.TRANSIENT,
                )

            await asyncio.sleep(poll_interval_s)

    @staticmethod
    def _leaders_ready(metadata: Optional[List[Dict[str, Any]]], topic: str) -> bool:
        """
        Check describe_topics output for a leader on every partition.

        Raises:
            ProvisionError: If the metadata carries an error other than
                "unknown topic" or "leader not available"
        """
        for entry in metadata or []:
            if entry.get("topic") != topic:
                continue

            error_code = entry.get("error_code", 0)
            if error_code in _PENDING_ERROR_CODES:
                return False
            if error_code:
                error = for_code(error_code)()
                raise ProvisionError(
                    f"Broker reported an error for topic {topic}",
                    topic=topic,
                    cause=error,
                    category=classify_kafka_error(error),
                )

            partitions = entry.get("partitions") or []
            return bool(partitions) and all(
                partition.get("leader", -1) >= 0 for partition in partitions
            )

        return False

    @staticmethod
    async def _close(admin: AIOKafkaAdminClient) -> None:
        try:
            await admin.close()
        except Exception as e:
            # Cleanup errors must not mask the provisioning outcome
            log_exception(logger, e, "Error closing admin client", level=logging.WARNING)
