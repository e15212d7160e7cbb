"""
Shared test fixtures and helpers for the ca-bundle-extractor test suite.

Provides:
  - path resolution for the trusted-list fixture files in tests/fixtures
  - real DER certificates generated with cryptography (self-signed, EC P-256)
  - build_tsl(): a small builder for trusted-list documents with chosen
    type / status / extension URIs per service
"""

from __future__ import annotations

import base64
import datetime
from dataclasses import dataclass, field
from pathlib import Path
from xml.sax.saxutils import escape

import pytest
import structlog
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding
from cryptography.x509.oid import NameOID

from ca_bundle_extractor.domain.vocabulary import (
    SERVICE_EXTENSION_URIS,
    SERVICE_STATUS_URIS,
    SERVICE_TYPE_URIS,
    ServiceExtension,
    ServiceStatus,
    ServiceType,
)

FIXTURES_DIR = Path(__file__).parent / "fixtures"

TSL_NAMESPACE = "http://uri.etsi.org/02231/v2#"

CA_QC_URI = SERVICE_TYPE_URIS[ServiceType.CA_QC]
GRANTED_URI = SERVICE_STATUS_URIS[ServiceStatus.GRANTED]
WITHDRAWN_URI = SERVICE_STATUS_URIS[ServiceStatus.WITHDRAWN]
ESIGNATURES_URI = SERVICE_EXTENSION_URIS[ServiceExtension.ESIGNATURES]
ESEALS_URI = SERVICE_EXTENSION_URIS[ServiceExtension.ESEALS]


@pytest.fixture()
def fixtures_dir() -> Path:
    """Return the absolute path to the test fixtures directory."""
    return FIXTURES_DIR


def fixture_path(filename: str) -> Path:
    """
    Resolve the absolute path to a test fixture file.

    Raises FileNotFoundError if the fixture does not exist.
    """
    path = FIXTURES_DIR / filename
    if not path.exists():
        raise FileNotFoundError(f"Test fixture not found: {path}")
    return path


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Undo any structlog configuration a test (or the CLI) applied."""
    yield
    structlog.reset_defaults()


# ─────────────────────── Certificates ───────────────────────


def make_certificate_der(common_name: str = "Test Qualified CA") -> bytes:
    """Generate a self-signed CA certificate and return its DER encoding."""
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([
        x509.NameAttribute(NameOID.COUNTRY_NAME, "IT"),
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Test Trust Services"),
        x509.NameAttribute(NameOID.COMMON_NAME, common_name),
    ])
    now = datetime.datetime.now(datetime.UTC)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=365))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(key, hashes.SHA256())
    )
    return cert.public_bytes(Encoding.DER)


@pytest.fixture(scope="session")
def certificate_der() -> bytes:
    """A valid DER certificate shared by the whole session."""
    return make_certificate_der()


# ─────────────────────── Trusted-list builder ───────────────────────


@dataclass(frozen=True)
class ServiceEntry:
    """
    One TSPService for build_tsl().

    `extension_uris` become Extension/AdditionalServiceInformation/URI elements;
    `plain_extensions` adds that many Extension elements without one.
    A `certificate` of None omits the X509Certificate element entirely.
    """

    type_uri: str | None = CA_QC_URI
    status_uri: str | None = GRANTED_URI
    extension_uris: tuple[str, ...] = (ESIGNATURES_URI,)
    plain_extensions: int = 0
    certificate: bytes | None = b""
    name: str = "Test Service"


@dataclass(frozen=True)
class ProviderEntry:
    name: str = "Test Provider"
    services: list[ServiceEntry] = field(default_factory=list)


def _element(tag: str, body: str, namespaced: bool) -> str:
    prefix = "tsl:" if namespaced else ""
    return f"<{prefix}{tag}>{body}</{prefix}{tag}>"


def _service_xml(service: ServiceEntry, namespaced: bool) -> str:
    def el(tag: str, body: str = "") -> str:
        return _element(tag, body, namespaced)

    parts: list[str] = []
    if service.type_uri is not None:
        parts.append(el("ServiceTypeIdentifier", escape(service.type_uri)))
    parts.append(el("ServiceName", el("Name", escape(service.name))))
    if service.certificate is not None:
        encoded = base64.b64encode(service.certificate).decode("ascii")
        parts.append(el("ServiceDigitalIdentity", el("DigitalId", el("X509Certificate", encoded))))
    if service.status_uri is not None:
        parts.append(el("ServiceStatus", escape(service.status_uri)))

    extensions = [
        el("Extension", el("AdditionalServiceInformation", el("URI", escape(uri))))
        for uri in service.extension_uris
    ]
    extensions += [el("Extension", el("Qualifications", "")) for _ in range(service.plain_extensions)]
    if extensions:
        parts.append(el("ServiceInformationExtensions", "".join(extensions)))

    return el("TSPService", el("ServiceInformation", "".join(parts)))


def build_tsl(providers: list[ProviderEntry], namespaced: bool = True) -> bytes:
    """Render a minimal trusted-list document containing `providers`."""

    def el(tag: str, body: str = "") -> str:
        return _element(tag, body, namespaced)

    provider_xml = "".join(
        el(
            "TrustServiceProvider",
            el("TSPInformation", el("TSPName", el("Name", escape(provider.name))))
            + el("TSPServices", "".join(_service_xml(s, namespaced) for s in provider.services)),
        )
        for provider in providers
    )
    if namespaced:
        root = (
            f'<tsl:TrustServiceStatusList xmlns:tsl="{TSL_NAMESPACE}">'
            f"{el('TrustServiceProviderList', provider_xml)}"
            "</tsl:TrustServiceStatusList>"
        )
    else:
        root = f"<TrustServiceStatusList>{el('TrustServiceProviderList', provider_xml)}</TrustServiceStatusList>"
    return ('<?xml version="1.0" encoding="UTF-8"?>\n' + root).encode("utf-8")


def single_service_tsl(service: ServiceEntry, provider_name: str = "Test Provider") -> bytes:
    return build_tsl([ProviderEntry(name=provider_name, services=[service])])
