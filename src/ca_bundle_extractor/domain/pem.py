"""
PEM encoder — wraps raw DER certificate bytes in BEGIN/END CERTIFICATE armor.

Armoring is delegated to asn1crypto.pem, which base64-encodes the payload in
64-column lines and terminates the footer with a newline. An empty payload is
refused with INVALID_CERTIFICATE: an armor block around nothing must never
reach the bundle.

describe_certificate() uses cryptography (PyCA) to render the subject for
trace output; it never affects what is exported.
"""

from __future__ import annotations

from asn1crypto import pem
from cryptography import x509
from railway import ErrorCode
from railway.result import Result

PEM_TYPE = "CERTIFICATE"


def encode_pem(der: bytes) -> Result[str]:
    """
    Encode DER certificate bytes as a single PEM block.

    Returns Result[str] with the block (trailing newline included),
    or Result.failure(INVALID_CERTIFICATE, ...) when `der` is empty.
    """
    if not der:
        return Result.failure(ErrorCode.INVALID_CERTIFICATE, "Service carries no certificate bytes")
    return Result.success(pem.armor(PEM_TYPE, der).decode("ascii"))


def decode_pem(block: str | bytes) -> Result[bytes]:
    """Strip the armor of a single CERTIFICATE block and return its DER bytes."""
    data = block.encode("ascii") if isinstance(block, str) else block
    return Result.from_computation(
        lambda: _unarmor_certificate(data),
        ErrorCode.INVALID_CERTIFICATE,
        "Not a PEM certificate block",
    )


def _unarmor_certificate(data: bytes) -> bytes:
    if not pem.detect(data):
        raise ValueError("no PEM armor found")
    type_name, _headers, der = pem.unarmor(data)
    if type_name != PEM_TYPE:
        raise ValueError(f"unexpected PEM type {type_name!r}")
    return der


def describe_certificate(der: bytes) -> str | None:
    """RFC 4514 subject of the certificate, or None when the bytes do not parse as X.509."""
    if not der:
        return None
    try:
        cert = x509.load_der_x509_certificate(der)
        return cert.subject.rfc4514_string()
    except ValueError:
        return None
