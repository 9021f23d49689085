"""Transport resolution: a direct TCP stream or one relayed by a SOCKS4 proxy."""

import socket
from typing import Optional

import socks

from core.errors import ConnectError, ProxyError
from core.models import Target


def establish(target: Target, proxy: Optional[Target] = None, timeout: float = 5) -> socket.socket:
    """Open a fresh byte stream to target, through proxy when given.

    Raises:
        ConnectError: target refused or unreachable (direct mode).
        ProxyError: proxy unreachable or it rejected the relay request.
    """
    if proxy is None:
        try:
            return socket.create_connection((target.host, target.port), timeout=timeout)
        except OSError as e:
            raise ConnectError(f"cannot connect to {target}: {_describe(e)}")

    sock = socks.socksocket(socket.AF_INET, socket.SOCK_STREAM)
    # SOCKS4 carries an IPv4 address, so names are resolved locally. No user id is sent.
    sock.set_proxy(socks.SOCKS4, proxy.host, proxy.port, rdns=False)
    sock.settimeout(timeout)
    try:
        sock.connect((target.host, target.port))
    except (socks.ProxyError, OSError) as e:
        sock.close()
        raise ProxyError(f"SOCKS4 proxy {proxy} could not reach {target}: {_describe(e)}")
    return sock


def _describe(error: Exception) -> str:
    if isinstance(error, socks.ProxyError):
        return error.msg
    if isinstance(error, socket.timeout):
        return "connection timed out"
    if isinstance(error, OSError) and error.strerror:
        return error.strerror
    return str(error) or error.__class__.__name__
