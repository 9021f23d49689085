"""Input parsing for addresses, wordlists, hash lists and the credential set."""

import binascii
from pathlib import Path
from typing import List, Optional

from core.errors import ConfigurationError, FormatError, WordlistError
from core.models import CredentialPair, CredentialSet, HashDigest, Password, RunConfig, Secret, Target

DEFAULT_RDP_PORT = 3389
DEFAULT_SOCKS_PORT = 1080

HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


def parse_address(address: str, default_port: Optional[int] = None) -> Target:
    """Parse 'host', 'host:port' or '[v6]:port' into a Target."""
    text = address.strip()
    if not text:
        raise ConfigurationError("Empty address")

    port_str = None
    if text.startswith("["):
        host, sep, rest = text[1:].partition("]")
        if not sep or (rest and not rest.startswith(":")):
            raise ConfigurationError(f"Invalid address '{address}'")
        if rest:
            port_str = rest[1:]
    elif text.count(":") == 1:
        host, port_str = text.split(":", 1)
    else:
        # bare hostname, IPv4 or unbracketed IPv6 literal
        host = text

    if not host:
        raise ConfigurationError(f"Missing host in '{address}'")

    if port_str is None:
        if default_port is None:
            raise ConfigurationError(f"Missing port in '{address}' (use host:port)")
        return Target(host=host, port=default_port)

    try:
        port = int(port_str)
    except ValueError:
        raise ConfigurationError(f"Invalid port number in '{address}'")
    if not 0 < port < 65536:
        raise ConfigurationError(f"Port out of range in '{address}'")
    return Target(host=host, port=port)


def parse_config(
    target: str,
    proxy: Optional[str] = None,
    logon_domain: Optional[str] = None,
    username: Optional[str] = None,
    username_list: Optional[str] = None,
    password_list: Optional[str] = None,
    hash_list: Optional[str] = None,
) -> RunConfig:
    """Build a RunConfig from CLI values, enforcing a username source."""
    if username is None and username_list is None:
        raise ConfigurationError(
            "Please pass --username or --username-list in order to set users to try."
        )
    return RunConfig(
        target=parse_address(target, default_port=DEFAULT_RDP_PORT),
        proxy=parse_address(proxy, default_port=DEFAULT_SOCKS_PORT) if proxy else None,
        logon_domain=logon_domain or "domain",
        username=username,
        username_list=username_list,
        password_list=password_list,
        hash_list=hash_list,
    )


def load_wordlist(filepath: str, kind: str = "wordlist") -> List[str]:
    """Read a file as UTF-8 and return its newline-separated segments, stripped.

    Empty segments are kept, including the one after a trailing newline.
    """
    path = Path(filepath)
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise WordlistError(f"{kind} not found: {filepath}")
    except UnicodeDecodeError:
        raise WordlistError(f"{kind} is not valid UTF-8: {filepath}")
    except OSError as e:
        raise WordlistError(f"cannot read {kind} {filepath}: {e.strerror or e}")
    return [line.strip() for line in content.split("\n")]


def decode_hex(text: str) -> bytes:
    """Decode an even-length string of hex digits (either case) into bytes."""
    if len(text) % 2:
        raise FormatError(f"odd-length hex string ({len(text)} chars)")
    bad = [c for c in text if c not in HEX_DIGITS]
    if bad:
        raise FormatError(f"non-hex character {bad[0]!r}")
    try:
        return binascii.unhexlify(text)
    except binascii.Error as e:
        raise FormatError(str(e))


def load_password_list(filepath: str) -> List[Password]:
    return [Password(line) for line in load_wordlist(filepath, kind="password list")]


def load_hash_list(filepath: str) -> List[HashDigest]:
    """Load NT hashes, one hex digest per line.

    Every line must decode; the first malformed one aborts the load.
    """
    digests = []
    for lineno, line in enumerate(load_wordlist(filepath, kind="hash list"), 1):
        try:
            digests.append(HashDigest(decode_hex(line.lower())))
        except FormatError as e:
            raise FormatError(f"hash list {filepath} line {lineno}: {e.message}")
    return digests


def build_credential_set(
    username: Optional[str] = None,
    username_list: Optional[str] = None,
    password_list: Optional[str] = None,
    hash_list: Optional[str] = None,
) -> CredentialSet:
    """Build the ordered credential set.

    Passwords come before hashes. The single username block is emitted
    first, then username-list x secrets (username-major). Nothing is
    deduplicated.
    """
    secrets: List[Secret] = []
    if password_list:
        secrets.extend(load_password_list(password_list))
    if hash_list:
        secrets.extend(load_hash_list(hash_list))

    pairs = []
    if username is not None:
        for secret in secrets:
            pairs.append(CredentialPair(username=username, secret=secret))

    if username_list:
        for user in load_wordlist(username_list, kind="username list"):
            for secret in secrets:
                pairs.append(CredentialPair(username=user, secret=secret))

    return tuple(pairs)


def credential_set_for(config: RunConfig) -> CredentialSet:
    return build_credential_set(
        username=config.username,
        username_list=config.username_list,
        password_list=config.password_list,
        hash_list=config.hash_list,
    )
