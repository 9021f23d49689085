"""Data models for Riptide."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple, Union


def mask_text(value: str) -> str:
    """Mask a secret for display (e.g. 'EricLikesRunning800' -> 'Er***00')."""
    if not value:
        return ""
    if len(value) <= 4:
        return value[0] + "***"
    return value[:2] + "***" + value[-2:]


@dataclass(frozen=True)
class Password:
    text: str

    def render(self, mask: bool = False) -> str:
        shown = mask_text(self.text) if mask else self.text
        return f"[pass: '{shown}']"

    def __str__(self) -> str:
        return self.render()


@dataclass(frozen=True)
class HashDigest:
    digest: bytes

    @property
    def hex(self) -> str:
        return self.digest.hex()

    def render(self, mask: bool = False) -> str:
        shown = mask_text(self.hex) if mask else self.hex
        return f"[nlm: {shown}]"

    def __str__(self) -> str:
        return self.render()


Secret = Union[Password, HashDigest]


@dataclass(frozen=True)
class CredentialPair:
    username: str
    secret: Secret

    def render(self, mask: bool = False) -> str:
        return f"<user: {self.username}, secret: {self.secret.render(mask)}>"

    def __str__(self) -> str:
        return self.render()

    @property
    def is_hash(self) -> bool:
        """True if this pair authenticates with an NT hash instead of a password."""
        return isinstance(self.secret, HashDigest)


@dataclass(frozen=True)
class Target:
    host: str
    port: int

    def __str__(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class RunConfig:
    """Read-only inputs for one run."""

    target: Target
    proxy: Optional[Target] = None
    logon_domain: str = "domain"
    username: Optional[str] = None
    username_list: Optional[str] = None
    password_list: Optional[str] = None
    hash_list: Optional[str] = None


CredentialSet = Tuple[CredentialPair, ...]


class AttemptStatus(Enum):
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    ERROR = "ERROR"


@dataclass
class AttemptResult:
    index: int
    pair: CredentialPair
    status: AttemptStatus = AttemptStatus.FAILURE
    message: str = ""


@dataclass
class RunReport:
    target: Target
    results: List[AttemptResult] = field(default_factory=list)
    elapsed: Optional[float] = None

    @property
    def winner(self) -> Optional[AttemptResult]:
        for result in self.results:
            if result.status == AttemptStatus.SUCCESS:
                return result
        return None

    @property
    def succeeded(self) -> bool:
        return self.winner is not None
