"""Integration tests for CLI commands."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest
import yaml
from click.testing import CliRunner

from stream_warden.cli.main import cli

HIGH_FPS_1080P_CHAIN_START = "1080p60,1080p50,1080p,1080p30,1080p25,1080p24,720p60"


def write_config(path: Path, data: dict[str, Any]) -> Path:
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, sort_keys=False)
    return path


class TestCLIIntegration:
    """Integration tests for CLI commands."""

    @pytest.fixture
    def cli_runner(self) -> CliRunner:
        """Create a CLI runner for testing."""
        return CliRunner()

    def test_cli_help(self, cli_runner: CliRunner) -> None:
        """Test CLI help command."""
        result = cli_runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "StreamWarden" in result.output
        assert "run" in result.output
        assert "validate" in result.output
        assert "channels" in result.output
        assert "quality-chain" in result.output
        assert "init" in result.output

    def test_cli_version(self, cli_runner: CliRunner) -> None:
        """Test CLI version command."""
        result = cli_runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_quality_chain(self, cli_runner: CliRunner) -> None:
        """Test printing the high-FPS chain."""
        result = cli_runner.invoke(cli, ["quality-chain", "1080p"])
        assert result.exit_code == 0
        assert result.output.startswith(HIGH_FPS_1080P_CHAIN_START)
        assert result.output.strip().endswith("144p24,worst")

    def test_quality_chain_unknown_quality(self, cli_runner: CliRunner) -> None:
        """Test an unknown quality with standard frame rates."""
        result = cli_runner.invoke(cli, ["quality-chain", "medium", "--standard-fps"])
        assert result.exit_code == 0
        assert result.output.strip() == "medium,worst"

    def test_init(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        """Test writing a default configuration file."""
        config_path = tmp_path / "config" / "config.yml"

        result = cli_runner.invoke(cli, ["--config", str(config_path), "init"])

        assert result.exit_code == 0
        assert "Configuration written" in result.output
        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        assert data["channels"] == []
        assert data["settings"]["helper_path"] == "streamlink"

    def test_init_existing_file(self, cli_runner: CliRunner, temp_config_file: Path) -> None:
        """Test init refuses to overwrite without --force."""
        result = cli_runner.invoke(cli, ["--config", str(temp_config_file), "init"])
        assert result.exit_code == 1
        assert "already exists" in result.output

        result = cli_runner.invoke(cli, ["--config", str(temp_config_file), "init", "--force"])
        assert result.exit_code == 0

    def test_validate_success(
        self,
        cli_runner: CliRunner,
        tmp_path: Path,
        sample_config_data: dict[str, Any],
    ) -> None:
        """Test validate with an available helper."""
        sample_config_data["settings"]["helper_path"] = sys.executable
        config_path = write_config(tmp_path / "valid.yml", sample_config_data)

        result = cli_runner.invoke(cli, ["--config", str(config_path), "validate"])

        assert result.exit_code == 0
        assert "Found 3 configured channels" in result.output
        assert "Validation complete" in result.output

    def test_validate_missing_helper(
        self,
        cli_runner: CliRunner,
        tmp_path: Path,
        sample_config_data: dict[str, Any],
    ) -> None:
        """Test validate reports a helper that is not installed."""
        sample_config_data["settings"]["helper_path"] = str(tmp_path / "no-such-streamlink")
        config_path = write_config(tmp_path / "config.yml", sample_config_data)

        result = cli_runner.invoke(cli, ["--config", str(config_path), "validate"])

        assert result.exit_code == 1
        assert "Stream helper not found" in result.output

    def test_validate_missing_config(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        """Test validate with a missing configuration file."""
        result = cli_runner.invoke(cli, ["--config", str(tmp_path / "nope.yml"), "validate"])

        assert result.exit_code == 1
        assert "Validation failed" in result.output

    def test_channels_list(self, cli_runner: CliRunner, temp_config_file: Path) -> None:
        """Test listing configured channels."""
        result = cli_runner.invoke(cli, ["--config", str(temp_config_file), "channels", "list"])

        assert result.exit_code == 0
        assert "Alice" in result.output
        assert "speedrunner" in result.output
        assert "sleepy" in result.output

    def test_channels_list_empty(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        """Test listing with no channels configured."""
        config_path = write_config(tmp_path / "config.yml", {"channels": []})

        result = cli_runner.invoke(cli, ["--config", str(config_path), "channels", "list"])

        assert result.exit_code == 0
        assert "No channels configured" in result.output

    def test_channels_add_and_remove(self, cli_runner: CliRunner, temp_config_file: Path) -> None:
        """Test adding and removing a channel round trip through the file."""
        result = cli_runner.invoke(
            cli,
            [
                "--config", str(temp_config_file),
                "channels", "add",
                "--platform", "twitch",
                "--name", "newbie",
                "--check-interval", "45",
            ],
        )
        assert result.exit_code == 0
        assert "Added Twitch:newbie" in result.output

        data = yaml.safe_load(temp_config_file.read_text(encoding="utf-8"))
        added = data["channels"][-1]
        assert added["channel_url"] == "https://www.twitch.tv/newbie"
        assert added["quality"] == "1080p"
        assert added["check_interval"] == 45
        assert added["active"] is True

        result = cli_runner.invoke(
            cli,
            ["--config", str(temp_config_file), "channels", "remove", "-p", "Twitch", "-n", "newbie"],
        )
        assert result.exit_code == 0
        assert "Removed" in result.output

        result = cli_runner.invoke(
            cli,
            ["--config", str(temp_config_file), "channels", "remove", "-p", "Twitch", "-n", "newbie"],
        )
        assert result.exit_code == 1
        assert "Channel not found" in result.output

    def test_channels_add_duplicate(self, cli_runner: CliRunner, temp_config_file: Path) -> None:
        """Test adding an existing channel fails."""
        result = cli_runner.invoke(
            cli,
            ["--config", str(temp_config_file), "channels", "add", "-p", "YouTube", "-n", "Alice"],
        )
        assert result.exit_code == 1
        assert "Channel already configured" in result.output

    def test_channels_add_invalid(self, cli_runner: CliRunner, temp_config_file: Path) -> None:
        """Test validation errors are reported."""
        result = cli_runner.invoke(
            cli,
            [
                "--config", str(temp_config_file),
                "channels", "add",
                "-p", "Twitch",
                "-n", "hasty",
                "--check-interval", "1",
            ],
        )
        assert result.exit_code == 1
        assert "Errors Found" in result.output

    def test_channels_add_unknown_platform_needs_url(
        self, cli_runner: CliRunner, temp_config_file: Path
    ) -> None:
        """Test unknown platforms require --url."""
        args = ["--config", str(temp_config_file), "channels", "add", "-p", "Vimeo", "-n", "artist"]

        result = cli_runner.invoke(cli, args)
        assert result.exit_code == 1

        result = cli_runner.invoke(cli, args + ["--url", "https://vimeo.com/artist", "--inactive"])
        assert result.exit_code == 0
        data = yaml.safe_load(temp_config_file.read_text(encoding="utf-8"))
        assert data["channels"][-1]["active"] is False

    def test_channels_edit(self, cli_runner: CliRunner, temp_config_file: Path) -> None:
        """Test changing quality and check interval of a channel."""
        result = cli_runner.invoke(
            cli,
            [
                "--config", str(temp_config_file),
                "channels", "edit",
                "-p", "twitch",
                "-n", "speedrunner",
                "-q", "480p",
                "--check-interval", "120",
            ],
        )

        assert result.exit_code == 0
        assert "Updated Twitch:speedrunner" in result.output
        edited = yaml.safe_load(temp_config_file.read_text(encoding="utf-8"))["channels"][1]
        assert edited["quality"] == "480p"
        assert edited["check_interval"] == 120
        assert edited["channel_url"] == "https://www.twitch.tv/speedrunner"

    def test_channels_edit_default_interval(
        self, cli_runner: CliRunner, temp_config_file: Path
    ) -> None:
        """Test a channel can fall back to the default check interval."""
        result = cli_runner.invoke(
            cli,
            [
                "--config", str(temp_config_file),
                "channels", "edit", "-p", "Twitch", "-n", "speedrunner", "--default-interval",
            ],
        )

        assert result.exit_code == 0
        assert "check interval: default" in result.output
        edited = yaml.safe_load(temp_config_file.read_text(encoding="utf-8"))["channels"][1]
        assert "check_interval" not in edited

    def test_channels_edit_errors(self, cli_runner: CliRunner, temp_config_file: Path) -> None:
        """Test invalid values, unknown channels and empty edits."""
        base = ["--config", str(temp_config_file), "channels", "edit"]

        result = cli_runner.invoke(
            cli, base + ["-p", "Twitch", "-n", "speedrunner", "--check-interval", "1"]
        )
        assert result.exit_code == 1
        assert "Errors Found" in result.output

        result = cli_runner.invoke(cli, base + ["-p", "Twitch", "-n", "ghost", "-q", "720p"])
        assert result.exit_code == 1
        assert "Channel not found" in result.output

        result = cli_runner.invoke(cli, base + ["-p", "Twitch", "-n", "speedrunner"])
        assert result.exit_code == 0
        assert "Nothing to change" in result.output

        result = cli_runner.invoke(
            cli,
            base + [
                "-p", "Twitch", "-n", "speedrunner", "--check-interval", "60", "--default-interval",
            ],
        )
        assert result.exit_code == 2

    def test_channels_enable_and_disable(
        self, cli_runner: CliRunner, temp_config_file: Path
    ) -> None:
        """Test toggling whether a channel is monitored."""
        base = ["--config", str(temp_config_file), "channels"]

        result = cli_runner.invoke(cli, base + ["enable", "-p", "Kick", "-n", "sleepy"])
        assert result.exit_code == 0
        assert "Enabled Kick:sleepy" in result.output

        result = cli_runner.invoke(cli, base + ["disable", "-p", "YouTube", "-n", "Alice"])
        assert result.exit_code == 0
        assert "Disabled YouTube:Alice" in result.output

        data = yaml.safe_load(temp_config_file.read_text(encoding="utf-8"))
        active = {channel["channel_name"]: channel["active"] for channel in data["channels"]}
        assert active == {"Alice": False, "speedrunner": True, "sleepy": True}

        result = cli_runner.invoke(cli, base + ["disable", "-p", "Kick", "-n", "ghost"])
        assert result.exit_code == 1
        assert "Channel not found" in result.output

    def test_run_with_auto_start_disabled(
        self,
        cli_runner: CliRunner,
        tmp_path: Path,
        sample_config_data: dict[str, Any],
    ) -> None:
        """Test run does nothing without auto start or --channel."""
        sample_config_data["settings"]["auto_start_monitoring"] = False
        config_path = write_config(tmp_path / "config.yml", sample_config_data)

        result = cli_runner.invoke(cli, ["--config", str(config_path), "run"])

        assert result.exit_code == 0
        assert "Automatic monitoring is disabled" in result.output

    def test_run_unknown_channel(self, cli_runner: CliRunner, temp_config_file: Path) -> None:
        """Test run with only unknown or inactive channels."""
        result = cli_runner.invoke(
            cli,
            ["--config", str(temp_config_file), "run", "--channel", "ghost", "--channel", "sleepy"],
        )

        assert result.exit_code == 0
        assert "Channel not configured: ghost" in result.output
        assert "Channel is inactive: Kick:sleepy" in result.output
        assert "No active channels to monitor" in result.output

    def test_run_missing_config(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        """Test run with a missing configuration file."""
        result = cli_runner.invoke(cli, ["--config", str(tmp_path / "nope.yml"), "run"])

        assert result.exit_code == 1
        assert "Configuration Error" in result.output

    @pytest.mark.skipif(sys.platform == "win32", reason="fake helper is a POSIX executable script")
    def test_run_monitors_and_shuts_down(
        self,
        cli_runner: CliRunner,
        tmp_path: Path,
        sample_config_data: dict[str, Any],
        fake_helper: Any,
    ) -> None:
        """Test run starts the active channels and shuts down when asked to stop."""
        sample_config_data["settings"]["helper_path"] = str(fake_helper.path)
        config_path = write_config(tmp_path / "config.yml", sample_config_data)

        with patch("stream_warden.cli.main._wait_for_stop_request") as mock_wait:
            result = cli_runner.invoke(cli, ["--config", str(config_path), "run"])

        assert result.exit_code == 0
        mock_wait.assert_called_once()
        assert "Monitoring 2 channel(s)" in result.output
        assert "All monitors stopped." in result.output
