"""
Tests for the command line entry point: exit codes and commands.
"""

import signal

import pytest
from unittest.mock import Mock, patch

from swap_bot.cli import build_parser, main
from swap_bot.orchestrator import LaneReport
from swap_bot.wallet import SecureKeyManager

KEY = "0x" + "4" * 64


@pytest.fixture
def workspace(tmp_path):
    """Config and key file with file logging disabled."""
    key_file = tmp_path / "pk.txt"
    key_file.write_text(f"# test wallet\n{KEY}\n")
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "maxCycles: 1\n"
        "keys:\n"
        f"  file: {key_file}\n"
        "logging:\n"
        "  dir: null\n"
    )
    return tmp_path, str(config_path)


class TestParser:

    def test_run_is_default(self):
        args = build_parser().parse_args([])
        assert args.command == "run"
        assert args.config == "config.yaml"
        assert args.dry_run is False

    def test_global_config_option(self):
        args = build_parser().parse_args(["--config", "other.yaml", "status"])
        assert args.command == "status"
        assert args.config == "other.yaml"


class TestExitCodes:

    def test_missing_config(self, tmp_path):
        assert main(["--config", str(tmp_path / "missing.yaml"), "run"]) == 1

    def test_missing_keys(self, tmp_path):
        config_path = tmp_path / "config.yaml"
        config_path.write_text(f"keys:\n  file: {tmp_path / 'nope.txt'}\nlogging:\n  dir: null\n")

        assert main(["--config", str(config_path)]) == 1

    def test_interrupt_is_clean_exit(self, workspace):
        _, config_path = workspace
        with patch("swap_bot.cli.connect", side_effect=KeyboardInterrupt):
            assert main(["--config", config_path, "run"]) == 0

    def test_unexpected_error(self, workspace):
        _, config_path = workspace
        with patch("swap_bot.cli.connect", side_effect=ConnectionError("Failed to connect")):
            assert main(["--config", config_path, "run"]) == 1

    def test_finished_run(self, workspace):
        _, config_path = workspace
        orchestrator = Mock()
        orchestrator.return_value.run.return_value = [LaneReport(lane_id=1, wallet_count=1, cycles=1, successes=1)]

        with patch("swap_bot.cli.connect", return_value=Mock()), \
                patch("swap_bot.cli.LaneOrchestrator", orchestrator):
            assert main(["--config", config_path, "run", "--dry-run"]) == 0

        config, secrets, _ = orchestrator.call_args[0]
        assert config.dry_run is True
        assert config.max_cycles == 1
        assert secrets == [KEY]

    def test_crashed_lane(self, workspace):
        _, config_path = workspace
        orchestrator = Mock()
        orchestrator.return_value.run.return_value = [
            LaneReport(lane_id=1, wallet_count=1, error="boom"),
        ]

        with patch("swap_bot.cli.connect", return_value=Mock()), \
                patch("swap_bot.cli.LaneOrchestrator", orchestrator):
            assert main(["--config", config_path]) == 1

    def test_sigterm_handler_restored(self, tmp_path):
        marker = Mock()
        previous = signal.signal(signal.SIGTERM, marker)
        try:
            main(["--config", str(tmp_path / "missing.yaml"), "run"])
            assert signal.getsignal(signal.SIGTERM) is marker
        finally:
            signal.signal(signal.SIGTERM, previous)


class TestEncryptKeys:

    def test_encrypt_with_env_password(self, workspace, monkeypatch):
        tmp_path, config_path = workspace
        monkeypatch.setattr(SecureKeyManager, "ITERATIONS", 1000)
        monkeypatch.setenv("TEST_ENCRYPT_PASSWORD", "long_enough_password")
        output = tmp_path / "keys.enc"

        code = main([
            "--config", config_path, "encrypt-keys",
            "--input", str(tmp_path / "pk.txt"),
            "--output", str(output),
            "--password-env", "TEST_ENCRYPT_PASSWORD",
        ])

        assert code == 0
        assert SecureKeyManager(str(output)).load_and_decrypt("long_enough_password") == [KEY]

    def test_short_password_rejected(self, workspace):
        tmp_path, config_path = workspace

        with patch("swap_bot.cli.getpass.getpass", return_value="short"):
            code = main([
                "--config", config_path, "encrypt-keys",
                "--input", str(tmp_path / "pk.txt"),
                "--output", str(tmp_path / "keys.enc"),
            ])

        assert code == 1
        assert not (tmp_path / "keys.enc").exists()


class TestStatus:

    def test_status_table(self, workspace):
        _, config_path = workspace
        w3 = Mock()
        w3.eth.get_balance.return_value = 2 * 10 ** 18

        with patch("swap_bot.cli.connect", return_value=w3):
            assert main(["--config", config_path, "status"]) == 0

        w3.eth.get_balance.assert_called_once()
