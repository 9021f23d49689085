"""
Unit tests for the riptide command line entry point.

Tests option validation, exit codes per failure stage and a full run with
fake collaborators.
"""

import pytest
from click.testing import CliRunner

import riptide
from core.errors import ConnectError
from tests.conftest import FakeAuthenticator, FakeConnector
from core.models import Password


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def fake_rdp(monkeypatch):
    """Replace the RDP authenticator and transport with in-memory fakes."""
    auth = FakeAuthenticator(lambda user, secret: secret == Password("correct"))
    connector = FakeConnector()
    monkeypatch.setattr(riptide, "RDPAuthenticator", lambda: auth)
    monkeypatch.setattr(riptide, "establish", connector)
    return auth, connector


class TestValidation:
    """Tests for fatal configuration and load errors."""

    def test_requires_username_source(self, runner, write_lines):
        result = runner.invoke(riptide.main, ["-t", "10.0.0.5:3389", "-P", write_lines("p.txt", "x")])
        assert result.exit_code == 2
        assert "Error (configuration)" in result.output

    def test_requires_target(self, runner):
        result = runner.invoke(riptide.main, ["-u", "admin"])
        assert result.exit_code == 2

    def test_missing_wordlist(self, runner, tmp_path):
        result = runner.invoke(riptide.main, ["-t", "10.0.0.5", "-u", "admin", "-P", str(tmp_path / "none.txt")])
        assert result.exit_code == 3
        assert "Error (load)" in result.output

    def test_malformed_hash_list(self, runner, write_lines, fake_rdp):
        """Test one bad hash aborts before any attempt."""
        auth, connector = fake_rdp
        result = runner.invoke(riptide.main, ["-t", "10.0.0.5", "-u", "admin", "-H", write_lines("h.txt", "abc")])
        assert result.exit_code == 3
        assert connector.calls == []

    def test_empty_credential_set(self, runner, write_lines, fake_rdp):
        auth, connector = fake_rdp
        result = runner.invoke(riptide.main, ["-t", "10.0.0.5", "-U", write_lines("u.txt", "alice\nbob")])
        assert result.exit_code == 4
        assert "no entries in credential list" in result.output
        assert connector.calls == []


class TestRun:
    """Tests for complete runs against fakes."""

    def test_success(self, runner, write_lines, fake_rdp):
        auth, connector = fake_rdp
        result = runner.invoke(
            riptide.main,
            ["-t", "10.0.0.5:3389", "-u", "admin", "-P", write_lines("p.txt", "wrong1\nwrong2\ncorrect")],
        )
        assert result.exit_code == 0
        assert "got 3 credential pairs to try." in result.output
        assert "#0: try: <user: admin, secret: [pass: 'wrong1']> -> fail" in result.output
        assert "#2: try: <user: admin, secret: [pass: 'correct']> -> success!!" in result.output
        assert len(connector.calls) == 3
        assert [call[0] for call in auth.calls] == ["domain"] * 3

    def test_exhausted_exits_zero(self, runner, write_lines, fake_rdp):
        result = runner.invoke(
            riptide.main,
            ["-t", "10.0.0.5", "-d", "CORP", "-u", "admin", "-P", write_lines("p.txt", "a\nb")],
        )
        assert result.exit_code == 0
        assert "Exhausted" in result.output

    def test_refused_target(self, runner, write_lines, monkeypatch):
        connector = FakeConnector(ConnectError("cannot connect to 10.0.0.5:3389: Connection refused"))
        monkeypatch.setattr(riptide, "RDPAuthenticator", lambda: FakeAuthenticator(lambda u, s: True))
        monkeypatch.setattr(riptide, "establish", connector)

        result = runner.invoke(riptide.main, ["-t", "10.0.0.5", "-u", "admin", "-P", write_lines("p.txt", "a\nb")])

        assert result.exit_code == 5
        assert "Error (connect)" in result.output
        assert len(connector.calls) == 1

    def test_skip_policy(self, runner, write_lines, monkeypatch):
        connector = FakeConnector(ConnectError("cannot connect to 10.0.0.5:3389: Connection refused"))
        monkeypatch.setattr(riptide, "RDPAuthenticator", lambda: FakeAuthenticator(lambda u, s: True))
        monkeypatch.setattr(riptide, "establish", connector)

        result = runner.invoke(
            riptide.main,
            ["-t", "10.0.0.5", "-u", "admin", "-P", write_lines("p.txt", "a\nb"), "--on-connect-error", "skip"],
        )

        assert result.exit_code == 0
        assert len(connector.calls) == 2

    def test_dry_run_sends_nothing(self, runner, write_lines, fake_rdp):
        auth, connector = fake_rdp
        result = runner.invoke(
            riptide.main,
            ["-t", "10.0.0.5", "-u", "admin", "-P", write_lines("p.txt", "a\nb\nc"), "--dry-run"],
        )
        assert result.exit_code == 0
        assert "3 total attempt(s) planned" in result.output
        assert connector.calls == []
        assert auth.calls == []
