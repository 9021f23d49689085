"""
Unit tests for modules.credssp.

Tests TSRequest encoding, DER framing and NTLM sealing.
"""

import socket

import pytest
from impacket import ntlm
from pyasn1.codec.der import encoder

from core.errors import ProtocolError
from modules.credssp import (
    CREDSSP_VERSION,
    NTLMCipher,
    TSRequest,
    decode_ts_request,
    der_length,
    encode_ts_request,
    error_code,
    nego_token,
    optional_field,
    read_ts_request,
)


class TestTSRequest:
    """Tests for TSRequest construction and parsing."""

    def test_nego_token_survives_encoding(self):
        token = b"NTLMSSP\x00\x01\x00\x00\x00" + b"\x00" * 20
        request = decode_ts_request(encode_ts_request(nego_token=token))
        assert int(request["version"]) == CREDSSP_VERSION
        assert nego_token(request) == token
        assert optional_field(request, "pubKeyAuth") is None

    def test_pub_key_auth(self):
        request = decode_ts_request(encode_ts_request(nego_token=b"tok", pub_key_auth=b"\x01" * 32))
        assert bytes(optional_field(request, "pubKeyAuth")) == b"\x01" * 32

    def test_encoding_is_der_sequence(self):
        data = encode_ts_request(nego_token=b"tok")
        assert data[0] == 0x30
        assert der_length(data) == len(data)

    def test_error_code_is_unsigned_ntstatus(self):
        """Test a negative INTEGER errorCode maps to its NTSTATUS value."""
        request = TSRequest()
        request["version"] = 6
        request["errorCode"] = -1073741715
        decoded = decode_ts_request(encoder.encode(request))
        assert error_code(decoded) == 0xC000006D
        assert nego_token(decoded) is None

    def test_no_error_code(self):
        assert error_code(decode_ts_request(encode_ts_request(nego_token=b"x"))) is None


class TestDerFraming:
    """Tests for der_length and read_ts_request."""

    def test_short_form(self):
        assert der_length(b"\x30\x05") == 7

    def test_long_form(self):
        assert der_length(b"\x30\x82\x01\x00") == 4 + 256

    def test_needs_more_bytes(self):
        assert der_length(b"\x30") is None
        assert der_length(b"\x30\x82\x01") is None

    def test_not_a_sequence(self):
        with pytest.raises(ValueError):
            der_length(b"\x02\x01")

    def test_reads_exactly_one_message(self):
        message = encode_ts_request(nego_token=b"A" * 300)
        client, server = socket.socketpair()
        try:
            server.sendall(message[:3])
            server.sendall(message[3:] + b"trailing")
            assert read_ts_request(client) == message
        finally:
            client.close()
            server.close()

    def test_peer_closes_early(self):
        message = encode_ts_request(nego_token=b"A" * 50)
        client, server = socket.socketpair()
        try:
            server.sendall(message[:10])
            server.shutdown(socket.SHUT_WR)
            with pytest.raises(ConnectionError):
                read_ts_request(client)
        finally:
            client.close()
            server.close()


class TestNTLMCipher:
    """Tests for NTLMCipher sealing."""

    FLAGS = (
        ntlm.NTLMSSP_NEGOTIATE_EXTENDED_SESSIONSECURITY
        | ntlm.NTLMSSP_NEGOTIATE_KEY_EXCH
        | ntlm.NTLMSSP_NEGOTIATE_128
        | ntlm.NTLMSSP_NEGOTIATE_SEAL
        | ntlm.NTLMSSP_NEGOTIATE_SIGN
    )

    def test_requires_extended_session_security(self):
        with pytest.raises(ProtocolError):
            NTLMCipher(ntlm.NTLMSSP_NEGOTIATE_SEAL, b"\x00" * 16)

    def test_seal_prefixes_signature(self):
        """Test sealed output is a 16-byte signature followed by ciphertext."""
        cipher = NTLMCipher(self.FLAGS, b"\x11" * 16)
        plaintext = b"public key bytes"
        sealed = cipher.seal(plaintext)
        assert len(sealed) == 16 + len(plaintext)
        assert sealed[16:] != plaintext
        assert cipher.sequence == 1

    def test_sequence_changes_output(self):
        cipher = NTLMCipher(self.FLAGS, b"\x11" * 16)
        assert cipher.seal(b"same") != cipher.seal(b"same")
        assert cipher.sequence == 2
