"""Abstract base classes for authentication modules."""

import socket
from abc import ABC, abstractmethod

from core.models import Secret


class Session(ABC):
    """An authenticated session returned by a successful attempt."""

    @abstractmethod
    def close(self) -> None:
        """Tear the session down and release its transport."""
        ...


class Authenticator(ABC):
    """Base class all authentication modules must inherit from."""

    @abstractmethod
    def authenticate(
        self,
        transport: socket.socket,
        domain: str,
        username: str,
        secret: Secret,
    ) -> Session:
        """Try one credential over an established transport.

        The transport is consumed: on success it belongs to the returned
        session, on failure the caller closes it.

        Returns:
            A Session if authentication succeeded.

        Raises:
            AuthenticationError: The credential was rejected, or the exchange
                broke down for this attempt.
            ProtocolError: The target cannot be audited with this module.
        """
        ...
