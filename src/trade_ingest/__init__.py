"""
Trade ingestion: replay a CSV of trade captures into a Kafka topic.

Modules:
    source       - CSV record source (raw rows)
    normalizer   - Raw row to TradeRecord with defaults
    provisioner  - Idempotent destination topic creation
    publisher    - Sequential, acknowledged publishing
    pipeline     - Run orchestration and exit status

Dependencies:
    - aiokafka: Async Kafka client (admin + producer)
    - pydantic: Trade message schema
"""

from config.config import IngestConfig
from trade_ingest.schemas import TradeRecord

__version__ = "0.1.0"
__all__ = ["IngestConfig", "TradeRecord"]
