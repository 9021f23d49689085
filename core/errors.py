"""Error taxonomy for Riptide.

Every fatal condition maps to a stage label and a distinct exit code so the
CLI can report which part of the run failed.
"""


class RiptideError(Exception):
    """Base exception for all Riptide errors."""

    stage = "run"
    exit_code = 1

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(RiptideError):
    """Options are missing or malformed (no username source, bad address)."""

    stage = "configuration"
    exit_code = 2


class WordlistError(RiptideError):
    """A configured wordlist could not be read."""

    stage = "load"
    exit_code = 3


class FormatError(WordlistError):
    """A hash list entry is not even-length hex."""


class EmptyCredentialSetError(RiptideError):
    stage = "credentials"
    exit_code = 4


class TransportError(RiptideError):
    """No byte stream to the target could be established."""

    stage = "connect"
    exit_code = 5


class ConnectError(TransportError):
    pass


class ProxyError(TransportError):
    stage = "proxy"


class ProtocolError(RiptideError):
    """The target cannot be audited at all (e.g. NLA is not offered)."""

    stage = "protocol"
    exit_code = 6


class AuthenticationError(RiptideError):
    """The remote side rejected one credential pair. Recoverable."""

    stage = "authentication"
