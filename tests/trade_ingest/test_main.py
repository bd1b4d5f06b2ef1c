"""Tests for the command line entry point."""

import logging
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from core.errors import ProvisionError
from trade_ingest import __main__ as cli
from trade_ingest.pipeline import PipelineResult, PipelineState


@pytest.fixture(autouse=True)
def no_dotenv():
    with patch.object(cli, "load_dotenv"):
        yield


@pytest.fixture(autouse=True)
def restore_root_logging():
    """setup_logging() replaces root handlers; put the test runner's back."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def _result(state):
    return PipelineResult(state=state)


class TestBuildOverrides:

    def test_no_flags_means_no_overrides(self):
        args = cli.parse_args([])
        assert cli.build_overrides(args) == {}

    def test_flags_map_to_config_sections(self):
        args = cli.parse_args(
            ["--file", "replay.csv", "--brokers", "a:1,b:2", "--topic", "trades-replay", "--drain"]
        )

        assert cli.build_overrides(args) == {
            "kafka": {
                "connection": {"bootstrap_servers": "a:1,b:2"},
                "topic": {"name": "trades-replay"},
            },
            "source": {"path": "replay.csv", "streaming": False},
        }


class TestMain:

    def test_success_exits_zero(self, tmp_path):
        run = AsyncMock(return_value=_result(PipelineState.SUCCEEDED))

        with patch.object(cli, "run_pipeline", run):
            code = cli.main(["--log-to-stdout", "--file", str(tmp_path / "t.csv")])

        assert code == 0
        config = run.call_args.args[0]
        assert config.source_path == str(tmp_path / "t.csv")
        assert config.topic == "trade-data"

    def test_fatal_pipeline_error_exits_nonzero(self):
        failed = _result(PipelineState.FAILED)
        failed.error = ProvisionError("no broker", topic="trade-data")

        with patch.object(cli, "run_pipeline", AsyncMock(return_value=failed)):
            assert cli.main(["--log-to-stdout"]) == 1

    def test_missing_config_file_exits_nonzero(self, tmp_path):
        with patch.object(cli, "run_pipeline", AsyncMock()) as run:
            code = cli.main(["--log-to-stdout", "--config", str(tmp_path / "nope.yaml")])

        assert code == 1
        run.assert_not_called()

    def test_unexpected_error_exits_nonzero(self):
        with patch.object(cli, "run_pipeline", AsyncMock(side_effect=RuntimeError("bug"))):
            assert cli.main(["--log-to-stdout"]) == 1

    def test_interrupt_exits_130(self):
        with patch.object(cli, "run_pipeline", AsyncMock(side_effect=KeyboardInterrupt)):
            assert cli.main(["--log-to-stdout"]) == 130

    def test_writes_log_file_under_log_dir(self, tmp_path):
        with patch.object(cli, "run_pipeline", AsyncMock(return_value=_result(PipelineState.SUCCEEDED))):
            cli.main(["--log-dir", str(tmp_path / "logs")])

        assert list(Path(tmp_path / "logs").rglob("ingest_*.log"))

    def test_missing_csv_end_to_end_exits_nonzero(self, tmp_path, mock_admin_client, mock_aiokafka_producer):
        with patch("trade_ingest.provisioner.AIOKafkaAdminClient", return_value=mock_admin_client):
            with patch("trade_ingest.publisher.AIOKafkaProducer", return_value=mock_aiokafka_producer):
                code = cli.main(["--log-to-stdout", "--file", str(tmp_path / "missing.csv")])

        assert code == 1
        mock_aiokafka_producer.send_and_wait.assert_not_called()
