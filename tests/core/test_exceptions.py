"""Tests for the stackctl exception hierarchy."""

from stackctl.core.exceptions import (
    ConfigurationError,
    EnvFileMissingError,
    ExitCode,
    RuntimeCommandError,
    RuntimeUnavailableError,
    StackError,
)


class TestStackErrors:
    def test_exit_codes(self):
        assert StackError("x").exit_code == ExitCode.FAILURE
        assert ConfigurationError("x").exit_code == ExitCode.CONFIG_INVALID
        assert EnvFileMissingError(".env").exit_code == ExitCode.CONFIG_INVALID
        assert RuntimeUnavailableError("x").exit_code == ExitCode.RUNTIME_UNAVAILABLE
        assert RuntimeCommandError(["docker"], 1).exit_code == ExitCode.FAILURE

    def test_error_codes_point_at_catalog(self):
        assert ConfigurationError("x").error_code == "CONFIG_002"
        assert EnvFileMissingError(".env").error_code == "CONFIG_001"
        assert RuntimeUnavailableError("x").error_code == "RT_001"
        assert RuntimeCommandError(["docker"], 1).error_code == "RT_002"

    def test_configuration_error_keeps_errors(self):
        error = ConfigurationError("bad", ["poll_interval: too small"])

        assert error.errors == ["poll_interval: too small"]
        assert error.details == {"errors": ["poll_interval: too small"]}

    def test_env_file_missing_message(self):
        error = EnvFileMissingError(".env.multi-llm")

        assert str(error) == "Environment file '.env.multi-llm' not found"
        assert error.env_file == ".env.multi-llm"

    def test_runtime_command_error_uses_last_stderr_line(self):
        error = RuntimeCommandError(
            ["docker", "compose", "down"], 2, "step 1\nstep 2\nfatal: daemon gone\n"
        )

        assert str(error) == "'docker compose down' exited with code 2: fatal: daemon gone"
        assert error.details["returncode"] == 2

    def test_runtime_command_error_without_output(self):
        error = RuntimeCommandError(["docker", "compose", "up"], 1)

        assert str(error).endswith("no output")

    def test_runtime_unavailable_records_command(self):
        error = RuntimeUnavailableError("timed out", ["docker", "compose", "ps"])

        assert error.details == {"command": "docker compose ps"}
        assert error.command == ["docker", "compose", "ps"]
