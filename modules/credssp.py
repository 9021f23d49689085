"""CredSSP (MS-CSSP) message encoding and NTLM sealing.

TSRequest ::= SEQUENCE {
    version     [0] INTEGER,
    negoTokens  [1] NegoData OPTIONAL,
    authInfo    [2] OCTET STRING OPTIONAL,
    pubKeyAuth  [3] OCTET STRING OPTIONAL,
    errorCode   [4] INTEGER OPTIONAL,
    clientNonce [5] OCTET STRING OPTIONAL
}
"""

from typing import Optional

from Cryptodome.Cipher import ARC4
from impacket import ntlm
from pyasn1.codec.der import decoder, encoder
from pyasn1.type import namedtype, tag, univ

from core.errors import ProtocolError

# Version 2 keeps pubKeyAuth as the sealed SubjectPublicKey (no nonce hashing).
CREDSSP_VERSION = 2

MAX_TSREQUEST_SIZE = 64 * 1024


def _ctx(number: int) -> tag.Tag:
    return tag.Tag(tag.tagClassContext, tag.tagFormatSimple, number)


class NegoToken(univ.Sequence):
    componentType = namedtype.NamedTypes(
        namedtype.NamedType("negoToken", univ.OctetString().subtype(explicitTag=_ctx(0))),
    )


class NegoData(univ.SequenceOf):
    componentType = NegoToken()


class TSRequest(univ.Sequence):
    componentType = namedtype.NamedTypes(
        namedtype.NamedType("version", univ.Integer().subtype(explicitTag=_ctx(0))),
        namedtype.OptionalNamedType("negoTokens", NegoData().subtype(explicitTag=_ctx(1))),
        namedtype.OptionalNamedType("authInfo", univ.OctetString().subtype(explicitTag=_ctx(2))),
        namedtype.OptionalNamedType("pubKeyAuth", univ.OctetString().subtype(explicitTag=_ctx(3))),
        namedtype.OptionalNamedType("errorCode", univ.Integer().subtype(explicitTag=_ctx(4))),
        namedtype.OptionalNamedType("clientNonce", univ.OctetString().subtype(explicitTag=_ctx(5))),
    )


def encode_ts_request(nego_token: Optional[bytes] = None, pub_key_auth: Optional[bytes] = None) -> bytes:
    request = TSRequest()
    request["version"] = CREDSSP_VERSION
    if nego_token is not None:
        item = NegoToken()
        item["negoToken"] = nego_token
        request["negoTokens"].append(item)
    if pub_key_auth is not None:
        request["pubKeyAuth"] = pub_key_auth
    return encoder.encode(request)


def decode_ts_request(data: bytes) -> TSRequest:
    request, _ = decoder.decode(data, asn1Spec=TSRequest())
    return request


def optional_field(request: TSRequest, name: str):
    """Return a TSRequest component, or None when the peer omitted it."""
    value = request.getComponentByName(name, instantiate=False)
    if value is univ.noValue or not value.isValue:
        return None
    return value


def nego_token(request: TSRequest) -> Optional[bytes]:
    tokens = optional_field(request, "negoTokens")
    if tokens is None or len(tokens) == 0:
        return None
    return bytes(tokens[0]["negoToken"])


def error_code(request: TSRequest) -> Optional[int]:
    code = optional_field(request, "errorCode")
    if code is None:
        return None
    return int(code) & 0xFFFFFFFF


def der_length(header: bytes) -> Optional[int]:
    """Total size of a DER SEQUENCE given its first bytes, or None if more are needed."""
    if len(header) < 2:
        return None
    if header[0] != 0x30:
        raise ValueError(f"expected DER SEQUENCE, got tag 0x{header[0]:02x}")
    first = header[1]
    if first < 0x80:
        return 2 + first
    count = first & 0x7F
    if count == 0 or count > 4:
        raise ValueError("unsupported DER length encoding")
    if len(header) < 2 + count:
        return None
    return 2 + count + int.from_bytes(header[2:2 + count], "big")


def read_ts_request(sock) -> bytes:
    """Read exactly one DER-encoded TSRequest from sock.

    Raises:
        ConnectionError: the peer closed the stream before a full message.
        ValueError: the bytes are not a DER SEQUENCE.
    """
    buf = b""
    total = None
    while total is None or len(buf) < total:
        chunk = sock.recv(4096 if total is None else min(4096, total - len(buf)))
        if not chunk:
            raise ConnectionError("connection closed by peer")
        buf += chunk
        if total is None:
            total = der_length(buf)
            if total is not None and total > MAX_TSREQUEST_SIZE:
                raise ValueError(f"TSRequest too large ({total} bytes)")
    return buf[:total]


class NTLMCipher:
    """Client-side NTLM sealing for CredSSP payloads.

    Only extended session security is supported, which every NLA-capable
    server negotiates when the client offers it.
    """

    def __init__(self, flags: int, session_key: bytes) -> None:
        if not flags & ntlm.NTLMSSP_NEGOTIATE_EXTENDED_SESSIONSECURITY:
            raise ProtocolError("server did not negotiate NTLM extended session security")
        self.flags = flags
        self.signing_key = ntlm.SIGNKEY(flags, session_key)
        self.sealing_key = ntlm.SEALKEY(flags, session_key)
        self._handle = ARC4.new(self.sealing_key).encrypt
        self.sequence = 0

    def seal(self, plaintext: bytes) -> bytes:
        """Return signature || ciphertext, advancing the sequence number."""
        sealed, signature = ntlm.SEAL(
            self.flags,
            self.signing_key,
            self.sealing_key,
            plaintext,
            plaintext,
            self.sequence,
            self._handle,
        )
        self.sequence += 1
        return signature.getData() + sealed
