"""
Tests for the chat-relay CLI.
"""

from typer.testing import CliRunner

from cli import app
from shared.security.auth import verify_session_token

runner = CliRunner()


class TestCli:
    def test_issue_token_is_verifiable(self):
        result = runner.invoke(app, ["issue-token", "42", "marta"])

        assert result.exit_code == 0
        claims = verify_session_token(result.stdout.strip())
        assert claims["sub"] == "42"
        assert claims["name"] == "marta"

    def test_check_config_in_development(self):
        result = runner.invoke(app, ["check-config"])

        assert result.exit_code == 0
        assert "Configuration OK" in result.stdout
        assert "session_secret" in result.stdout

    def test_history_refuses_memory_store(self):
        result = runner.invoke(app, ["history"])

        assert result.exit_code == 1
        assert "MESSAGE_STORE=memory" in result.stdout

    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "Gateway" in result.stdout
