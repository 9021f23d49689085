"""
Pytest configuration and shared fixtures for Riptide tests.
"""

import io
from pathlib import Path
from typing import Callable, List, Optional

import pytest
from rich.console import Console

from core.errors import AuthenticationError, ConnectError
from core.models import CredentialPair, Password, RunConfig, Secret, Target
from core.theme import RIPTIDE_THEME
from modules.base import Authenticator, Session


# =============================================================================
# FAKE COLLABORATORS
# =============================================================================


class FakeTransport:
    """Stands in for an established socket."""

    def __init__(self) -> None:
        self.closed = False

    def close(self) -> None:
        self.closed = True


class FakeSession(Session):
    def __init__(self, transport: FakeTransport) -> None:
        self.transport = transport
        self.closed = False

    def close(self) -> None:
        self.closed = True
        self.transport.close()


class FakeAuthenticator(Authenticator):
    """Accepts a credential when `accept(username, secret)` is true."""

    def __init__(self, accept: Callable[[str, Secret], bool]) -> None:
        self.accept = accept
        self.calls: List[tuple] = []
        self.sessions: List[FakeSession] = []

    def authenticate(self, transport, domain, username, secret) -> Session:
        self.calls.append((domain, username, secret))
        if not self.accept(username, secret):
            raise AuthenticationError("STATUS_LOGON_FAILURE (0xc000006d)")
        session = FakeSession(transport)
        self.sessions.append(session)
        return session


class FakeConnector:
    """Records every transport request; optionally fails them."""

    def __init__(self, error: Optional[Exception] = None) -> None:
        self.error = error
        self.calls: List[tuple] = []
        self.transports: List[FakeTransport] = []

    def __call__(self, target, proxy=None, timeout=5):
        self.calls.append((target, proxy, timeout))
        if self.error is not None:
            raise self.error
        transport = FakeTransport()
        self.transports.append(transport)
        return transport


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def write_lines(tmp_path: Path) -> Callable[[str, str], str]:
    """Write raw text to a file under tmp_path and return its path."""

    def _write(name: str, content: str) -> str:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return str(path)

    return _write


@pytest.fixture
def target() -> Target:
    return Target(host="192.0.2.10", port=3389)


@pytest.fixture
def run_config(target: Target) -> RunConfig:
    return RunConfig(target=target, username="admin")


@pytest.fixture
def output() -> Console:
    """A console that records into memory without wrapping."""
    return Console(file=io.StringIO(), width=400, theme=RIPTIDE_THEME)


@pytest.fixture
def password_only() -> FakeAuthenticator:
    """Authenticator that accepts only the password 'correct'."""
    return FakeAuthenticator(lambda user, secret: secret == Password("correct"))


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def refusing_connector() -> FakeConnector:
    return FakeConnector(ConnectError("cannot connect to 192.0.2.10:3389: Connection refused"))


def pairs(username: str, *passwords: str) -> tuple:
    return tuple(CredentialPair(username, Password(p)) for p in passwords)
