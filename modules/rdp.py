"""RDP authentication module: X.224 negotiation, TLS and CredSSP/NTLM via impacket."""

import logging
import socket
import ssl
import struct
from typing import Tuple, Union

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from impacket import nt_errors, ntlm
from pyasn1.error import PyAsn1Error

from core.errors import AuthenticationError, ProtocolError
from core.models import HashDigest, Password, Secret
from modules.base import Authenticator, Session
from modules.credssp import (
    NTLMCipher,
    decode_ts_request,
    encode_ts_request,
    error_code,
    nego_token,
    optional_field,
    read_ts_request,
)

logging.getLogger("impacket").setLevel(logging.CRITICAL)

TPKT_VERSION = 3
X224_CONNECTION_REQUEST = 0xE0
X224_CONNECTION_CONFIRM = 0xD0

TYPE_RDP_NEG_REQ = 0x01
TYPE_RDP_NEG_RSP = 0x02
TYPE_RDP_NEG_FAILURE = 0x03

PROTOCOL_RDP = 0x0
PROTOCOL_SSL = 0x1
PROTOCOL_HYBRID = 0x2

# SPN class placed in the NTLMv2 target name
TERMSRV_SERVICE = "TERMSRV"

NEG_FAILURE_CODES = {
    0x1: "SSL_REQUIRED_BY_SERVER",
    0x2: "SSL_NOT_ALLOWED_BY_SERVER",
    0x3: "SSL_CERT_NOT_ON_SERVER",
    0x4: "INCONSISTENT_FLAGS",
    0x5: "HYBRID_REQUIRED_BY_SERVER",
    0x6: "SSL_WITH_USER_AUTH_REQUIRED_BY_SERVER",
}


def connection_request(protocols: int = PROTOCOL_SSL | PROTOCOL_HYBRID) -> bytes:
    """TPKT + X.224 Connection Request carrying an RDP_NEG_REQ."""
    neg_req = struct.pack("<BBHI", TYPE_RDP_NEG_REQ, 0, 8, protocols)
    # LI counts code, dst-ref, src-ref, class and the variable part
    x224 = struct.pack("!BBHHB", 6 + len(neg_req), X224_CONNECTION_REQUEST, 0, 0, 0) + neg_req
    return struct.pack("!BBH", TPKT_VERSION, 0, 4 + len(x224)) + x224


def selected_protocol(pdu: bytes) -> int:
    """Parse a TPKT + X.224 Connection Confirm and return the selected protocol.

    Raises:
        ProtocolError: the server refused negotiation or the reply is not RDP.
    """
    if len(pdu) < 11 or pdu[0] != TPKT_VERSION:
        raise ProtocolError("target did not answer with an RDP connection confirm")
    x224 = pdu[4:]
    if x224[1] != X224_CONNECTION_CONFIRM:
        raise ProtocolError(f"unexpected X.224 code 0x{x224[1]:02x}")
    neg = x224[7:]
    if len(neg) < 8:
        return PROTOCOL_RDP
    neg_type, _, _, value = struct.unpack("<BBHI", neg[:8])
    if neg_type == TYPE_RDP_NEG_FAILURE:
        reason = NEG_FAILURE_CODES.get(value, f"0x{value:x}")
        raise ProtocolError(f"RDP negotiation failed: {reason}")
    if neg_type != TYPE_RDP_NEG_RSP:
        raise ProtocolError(f"unexpected RDP negotiation type 0x{neg_type:02x}")
    return value


def ntlm_secret(secret: Secret) -> Tuple[str, Union[str, bytes]]:
    """Map a secret onto impacket's (password, nthash) arguments."""
    if isinstance(secret, Password):
        return secret.text, ""
    if isinstance(secret, HashDigest):
        return "", secret.digest
    raise TypeError(f"unsupported secret type {type(secret).__name__}")


def describe_status(code: int) -> str:
    name, _ = nt_errors.ERROR_MESSAGES.get(code, (None, None))
    if name:
        return f"{name} (0x{code:08x})"
    return f"NTSTATUS 0x{code:08x}"


def server_public_key(tls: ssl.SSLSocket) -> bytes:
    """SubjectPublicKey of the server certificate, as sealed into pubKeyAuth."""
    der = tls.getpeercert(binary_form=True)
    if not der:
        raise ProtocolError("server presented no TLS certificate")
    public_key = x509.load_der_x509_certificate(der).public_key()
    return public_key.public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.PKCS1,
    )


def _recv_exact(sock: socket.socket, size: int) -> bytes:
    buf = b""
    while len(buf) < size:
        chunk = sock.recv(size - len(buf))
        if not chunk:
            raise ConnectionError("connection closed by peer")
        buf += chunk
    return buf


class RDPSession(Session):
    def __init__(self, tls: ssl.SSLSocket) -> None:
        self.tls = tls

    def close(self) -> None:
        try:
            self.tls.close()
        except OSError:
            pass  # teardown is best-effort


class RDPAuthenticator(Authenticator):
    def authenticate(self, transport: socket.socket, domain: str, username: str, secret: Secret) -> Session:
        password, nthash = ntlm_secret(secret)

        try:
            transport.sendall(connection_request())
            header = _recv_exact(transport, 4)
            length = struct.unpack("!H", header[2:4])[0]
            if header[0] != TPKT_VERSION or length < 4:
                raise ProtocolError("target did not answer with a TPKT header")
            protocol = selected_protocol(header + _recv_exact(transport, length - 4))
        except OSError as e:
            raise AuthenticationError(f"negotiation failed: {e}")

        if not protocol & PROTOCOL_HYBRID:
            raise ProtocolError("target does not offer CredSSP (NLA); credentials cannot be checked")

        tls = self._start_tls(transport)
        try:
            session = self._credssp(tls, domain, username, password, nthash)
        except (OSError, ValueError, struct.error, PyAsn1Error) as e:
            tls.close()
            raise AuthenticationError(f"CredSSP exchange failed: {e}")
        except (AuthenticationError, ProtocolError):
            tls.close()
            raise
        return session

    def _start_tls(self, transport: socket.socket) -> ssl.SSLSocket:
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        try:
            return context.wrap_socket(transport)
        except OSError as e:
            raise AuthenticationError(f"TLS handshake failed: {e}")

    def _credssp(self, tls, domain: str, username: str, password: str, nthash) -> RDPSession:
        negotiate = ntlm.getNTLMSSPType1("", "", True, use_ntlmv2=True)
        tls.sendall(encode_ts_request(nego_token=negotiate.getData()))

        reply = decode_ts_request(read_ts_request(tls))
        challenge = nego_token(reply)
        if challenge is None:
            code = error_code(reply)
            if code is not None:
                raise AuthenticationError(describe_status(code))
            raise AuthenticationError("server sent no NTLM challenge")

        try:
            authenticate, session_key = ntlm.getNTLMSSPType3(
                negotiate, challenge, username, password, domain, "", nthash,
                use_ntlmv2=True, service=TERMSRV_SERVICE,
            )
        except Exception as e:
            # impacket raises TypeError or bare Exception on challenges it cannot parse
            raise AuthenticationError(f"unusable NTLM challenge: {type(e).__name__}: {e}")
        cipher = NTLMCipher(authenticate["flags"], session_key)
        pub_key_auth = cipher.seal(server_public_key(tls))
        tls.sendall(encode_ts_request(nego_token=authenticate.getData(), pub_key_auth=pub_key_auth))

        # A rejected logon either carries an NTSTATUS or drops the connection.
        try:
            reply = decode_ts_request(read_ts_request(tls))
        except (ConnectionError, ssl.SSLError) as e:
            raise AuthenticationError(f"logon rejected (connection closed: {e})")

        if optional_field(reply, "pubKeyAuth") is not None:
            return RDPSession(tls)
        code = error_code(reply)
        if code is not None:
            raise AuthenticationError(describe_status(code))
        raise AuthenticationError("logon rejected (no pubKeyAuth in reply)")
