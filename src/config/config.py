"""Trade ingestion configuration from YAML file.

Loads from config/config.yaml with all settings in one place:
- Broker connection settings
- Destination topic and its partition/replication layout
- Producer acknowledgement settings
- Source file settings

Environment variables ARE supported using ${VAR_NAME} syntax in YAML files.
"""

import logging
import os
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

# Configure module logger
logger = logging.getLogger(__name__)


def load_yaml(path: Path) -> Dict[str, Any]:
    """Load YAML file and return dict."""
    if not path.exists():
        return {}
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand ${VAR_NAME} and ${VAR_NAME:-default} environment variables in config data."""
    if isinstance(data, dict):
        return {key: _expand_env_vars(value) for key, value in data.items()}
    elif isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    elif isinstance(data, str):
        # Support both ${VAR} and ${VAR:-default} syntax
        pattern = r"\$\{([^}:]+)(?::-(([^}]*))?)?\}"

        def replacer(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else match.group(0)
            return os.getenv(var_name, default_value)

        return re.sub(pattern, replacer, data)
    else:
        return data


def parse_brokers(value: Union[str, List[str], None]) -> List[str]:
    """Normalize a comma-separated string or list of broker addresses."""
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",")
    else:
        items = [str(item) for item in value]
    return [item.strip() for item in items if item and item.strip()]


# Default config file: config/config.yaml in src/ directory
DEFAULT_CONFIG_FILE = Path(__file__).parent / "config.yaml"

VALID_ACKS = ["0", "1", "all", 0, 1, -1]
VALID_SECURITY_PROTOCOLS = ["PLAINTEXT", "SSL", "SASL_PLAINTEXT", "SASL_SSL"]
VALID_SASL_MECHANISMS = ["PLAIN", "SCRAM-SHA-256", "SCRAM-SHA-512"]


@dataclass
class IngestConfig:
    """Trade ingestion configuration.

    Passed explicitly to the topic provisioner, the publisher and the
    pipeline; nothing reads broker settings from module globals.

    Configuration structure:
        kafka:
          connection: {...}   # Brokers, client id, security
          producer: {...}     # acks
          topic: {...}        # name, partitions, replication_factor, leader wait
        source: {...}         # path, delimiter, encoding, streaming

    All timing values in milliseconds.
    """

    # =========================================================================
    # CONNECTION SETTINGS
    # =========================================================================
    brokers: List[str] = field(default_factory=lambda: ["localhost:19092"])
    client_id: str = "trade-ingestor"
    security_protocol: str = "PLAINTEXT"
    sasl_mechanism: str = "PLAIN"
    sasl_plain_username: str = ""
    sasl_plain_password: str = ""
    request_timeout_ms: int = 30000

    # =========================================================================
    # TOPIC SETTINGS
    # =========================================================================
    topic: str = "trade-data"
    partitions: int = 1
    replication_factor: int = 1
    leader_wait_timeout_ms: int = 30000
    leader_poll_interval_ms: int = 250

    # =========================================================================
    # PRODUCER SETTINGS
    # =========================================================================
    acks: Union[str, int] = "all"

    # =========================================================================
    # SOURCE SETTINGS
    # =========================================================================
    source_path: str = "trades_data.csv"
    delimiter: str = ","
    encoding: str = "utf-8-sig"
    streaming: bool = True

    @property
    def bootstrap_servers(self) -> str:
        """Brokers joined the way Kafka clients accept them."""
        return ",".join(self.brokers)

    def client_security_kwargs(self) -> Dict[str, Any]:
        """Security keyword arguments shared by the admin client and the producer."""
        if self.security_protocol == "PLAINTEXT":
            return {}

        kwargs: Dict[str, Any] = {"security_protocol": self.security_protocol}
        if self.security_protocol.startswith("SASL"):
            kwargs["sasl_mechanism"] = self.sasl_mechanism
            kwargs["sasl_plain_username"] = self.sasl_plain_username
            kwargs["sasl_plain_password"] = self.sasl_plain_password
        return kwargs

    def producer_acks(self) -> Union[str, int]:
        """acks as aiokafka expects it: an int for 0/1/-1, otherwise "all"."""
        acks = self.acks
        if isinstance(acks, str) and acks.lstrip("-").isdigit():
            return int(acks)
        return acks

    def validate(self) -> None:
        """Validate configuration for correctness and constraints."""
        if not self.brokers:
            raise ValueError("bootstrap_servers is required in kafka.connection section")
        if not self.client_id:
            raise ValueError("client_id must not be empty")
        if not self.topic:
            raise ValueError("topic name must not be empty")

        settings = asdict(self)
        self._validate_min(settings, "partitions", 1, inclusive=True, context="kafka.topic")
        self._validate_min(settings, "replication_factor", 1, inclusive=True, context="kafka.topic")
        self._validate_min(settings, "leader_wait_timeout_ms", 0, inclusive=False, context="kafka.topic")
        self._validate_min(settings, "leader_poll_interval_ms", 0, inclusive=False, context="kafka.topic")
        self._validate_min(settings, "request_timeout_ms", 0, inclusive=False, context="kafka.connection")
        self._validate_enum(settings, "acks", VALID_ACKS, "kafka.producer")
        self._validate_enum(settings, "security_protocol", VALID_SECURITY_PROTOCOLS, "kafka.connection")
        if self.security_protocol.startswith("SASL"):
            self._validate_enum(settings, "sasl_mechanism", VALID_SASL_MECHANISMS, "kafka.connection")

        if len(self.delimiter) != 1:
            raise ValueError(
                f"source: delimiter must be a single character, got '{self.delimiter}'"
            )

    @staticmethod
    def _validate_enum(
        settings: Dict[str, Any],
        key: str,
        valid_values: List[Any],
        context: str
    ) -> None:
        """Validate that a setting's value is in a list of valid values."""
        if key in settings and settings[key] not in valid_values:
            raise ValueError(
                f"{context}: {key} must be one of {valid_values}, "
                f"got '{settings[key]}'"
            )

    @staticmethod
    def _validate_min(
        settings: Dict[str, Any],
        key: str,
        min_value: float,
        inclusive: bool,
        context: str
    ) -> None:
        """Validate that a setting's value meets a minimum threshold."""
        if key in settings:
            value = settings[key]
            if inclusive and value < min_value:
                raise ValueError(
                    f"{context}: {key} must be >= {min_value}, got {value}"
                )
            elif not inclusive and value <= min_value:
                raise ValueError(
                    f"{context}: {key} must be > {min_value}, got {value}"
                )


def _deep_merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge overlay into base dict."""
    result = base.copy()
    for key, value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def load_config(
    config_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> IngestConfig:
    """Load ingestion configuration from config.yaml file.

    Overrides use the same nested layout as the YAML file and are merged
    on top of it, e.g. {"kafka": {"topic": {"name": "trades-replay"}}}.

    Environment variables ARE supported using ${VAR_NAME} syntax in YAML files.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_FILE

    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path}\n" f"Expected file: config/config.yaml"
        )

    logger.info(f"Loading configuration from file: {config_path}")
    yaml_data = load_yaml(config_path)
    yaml_data = _expand_env_vars(yaml_data)

    if overrides:
        logger.debug(f"Applying overrides: {list(overrides.keys())}")
        yaml_data = _deep_merge(yaml_data, overrides)

    if "kafka" not in yaml_data:
        raise ValueError(
            "Invalid config file: missing 'kafka:' section\n"
            "See src/config/config.yaml for correct structure"
        )

    kafka_config = yaml_data["kafka"] or {}
    connection = kafka_config.get("connection", {}) or {}
    producer = kafka_config.get("producer", {}) or {}
    topic = kafka_config.get("topic", {}) or {}
    source = yaml_data.get("source", {}) or {}

    defaults = IngestConfig()
    brokers = parse_brokers(connection.get("bootstrap_servers")) or defaults.brokers

    try:
        config = IngestConfig(
            brokers=brokers,
            client_id=connection.get("client_id", defaults.client_id),
            security_protocol=connection.get("security_protocol", defaults.security_protocol),
            sasl_mechanism=connection.get("sasl_mechanism", defaults.sasl_mechanism),
            sasl_plain_username=connection.get("sasl_plain_username", ""),
            sasl_plain_password=connection.get("sasl_plain_password", ""),
            request_timeout_ms=int(connection.get("request_timeout_ms", defaults.request_timeout_ms)),
            topic=topic.get("name", defaults.topic),
            partitions=int(topic.get("partitions", defaults.partitions)),
            replication_factor=int(topic.get("replication_factor", defaults.replication_factor)),
            leader_wait_timeout_ms=int(
                topic.get("leader_wait_timeout_ms", defaults.leader_wait_timeout_ms)
            ),
            leader_poll_interval_ms=int(
                topic.get("leader_poll_interval_ms", defaults.leader_poll_interval_ms)
            ),
            acks=producer.get("acks", defaults.acks),
            source_path=str(source.get("path", defaults.source_path)),
            delimiter=source.get("delimiter", defaults.delimiter),
            encoding=source.get("encoding", defaults.encoding),
            streaming=_as_bool(source.get("streaming", defaults.streaming)),
        )
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid configuration value: {e}") from e

    logger.debug("Configuration loaded successfully:")
    logger.debug(f"  - Brokers: {config.bootstrap_servers}")
    logger.debug(f"  - Topic: {config.topic}")
    logger.debug(f"  - Source: {config.source_path}")

    config.validate()
    return config
