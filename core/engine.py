"""Sequential attempt engine: one transport and one authentication per pair."""

import socket
import sys
import time
from enum import Enum
from typing import Callable, Optional, Sequence

from rich.console import Console
from rich.text import Text

from core.errors import AuthenticationError, EmptyCredentialSetError, RiptideError, TransportError
from core.models import AttemptResult, AttemptStatus, CredentialPair, RunConfig, RunReport
from core.theme import RIPTIDE_THEME
from core.transport import establish
from modules.base import Authenticator

console = Console(theme=RIPTIDE_THEME)

Connector = Callable[..., socket.socket]


def _fatal_detail(error: BaseException) -> str:
    if isinstance(error, RiptideError):
        return error.message
    if isinstance(error, KeyboardInterrupt):
        return "interrupted"
    return f"{type(error).__name__}: {error}"


class ConnectPolicy(Enum):
    """What a transport failure does to the run."""

    ABORT = "abort"
    SKIP = "skip"


class AttemptEngine:
    """Tries each credential pair in order and stops at the first success."""

    def __init__(
        self,
        authenticator: Authenticator,
        connector: Connector = establish,
        timeout: float = 5,
        delay: float = 0,
        connect_policy: ConnectPolicy = ConnectPolicy.ABORT,
        debug: bool = False,
        mask_creds: bool = False,
        output: Optional[Console] = None,
    ):
        self.authenticator = authenticator
        self.connector = connector
        self.timeout = timeout
        self.delay = delay
        self.connect_policy = connect_policy
        self.debug = debug
        self.mask_creds = mask_creds
        self.console = output or console

    def _attempt(self, config: RunConfig, index: int, pair: CredentialPair) -> AttemptResult:
        """Run one attempt. Transport errors propagate under the abort policy."""
        result = AttemptResult(index=index, pair=pair)

        try:
            transport = self.connector(config.target, config.proxy, timeout=self.timeout)
        except TransportError as e:
            if self.connect_policy is ConnectPolicy.ABORT:
                raise
            result.status = AttemptStatus.ERROR
            result.message = e.message
            return result

        try:
            session = self.authenticator.authenticate(
                transport, config.logon_domain, pair.username, pair.secret
            )
        except AuthenticationError as e:
            transport.close()
            result.status = AttemptStatus.FAILURE
            result.message = e.message
            return result
        except BaseException:
            transport.close()
            raise

        session.close()
        result.status = AttemptStatus.SUCCESS
        result.message = "Authentication successful"
        return result

    def run(self, config: RunConfig, credentials: Sequence[CredentialPair]) -> RunReport:
        """Attempt every pair in order until one authenticates.

        Raises:
            EmptyCredentialSetError: nothing to try; no attempt is made.
            TransportError: under ConnectPolicy.ABORT, on the first failed connect.
            ProtocolError: the authenticator cannot audit this target.
        """
        if not credentials:
            raise EmptyCredentialSetError("critical: no entries in credential list")

        report = RunReport(target=config.target)
        start_time = time.monotonic()

        try:
            for index, pair in enumerate(credentials):
                if index and self.delay > 0:
                    time.sleep(self.delay)

                self._print_progress(index, pair)
                try:
                    result = self._attempt(config, index, pair)
                except BaseException as e:
                    self._print_outcome("fatal", f"fatal {_fatal_detail(e)}")
                    raise
                report.results.append(result)

                if result.status == AttemptStatus.SUCCESS:
                    self._print_outcome("success", "success!!")
                elif result.status == AttemptStatus.ERROR:
                    self._print_outcome("error", f"error {result.message}")
                else:
                    self._print_outcome("failure", f"fail {result.message}")

                if self.debug:
                    self._print_debug(result)

                if result.status == AttemptStatus.SUCCESS:
                    break
        finally:
            report.elapsed = time.monotonic() - start_time

        return report

    def _print_progress(self, index: int, pair: CredentialPair) -> None:
        line = Text()
        line.append(f"#{index}", style="attempt.index")
        line.append(": try: ")
        line.append(pair.render(mask=self.mask_creds), style="attempt.pair")
        line.append(" -> ")
        self.console.print(line, end="", soft_wrap=True)

    def _print_outcome(self, style: str, message: str) -> None:
        self.console.print(Text(message, style=style), soft_wrap=True)

    def _print_debug(self, result: AttemptResult) -> None:
        """Print raw unformatted debug line to stderr."""
        pair = result.pair
        parts = [
            f"[DEBUG] {result.status.value}",
            f"idx={result.index}",
            f"user={pair.username}",
            f"secret={pair.secret.render(mask=self.mask_creds)}",
        ]
        if result.message:
            parts.append(f"msg={result.message}")
        sys.stderr.write(" | ".join(parts) + "\n")
        sys.stderr.flush()
