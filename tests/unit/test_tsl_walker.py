"""
Unit tests for the TSL walker — lxml tree → ResolvedService stream.

Uses the sample trusted list in tests/fixtures and synthetic documents
rendered by build_tsl() for the edge cases.
"""

from __future__ import annotations

import base64

from lxml import etree
from structlog.testing import capture_logs

from ca_bundle_extractor.adapters.tsl_loader import parse_tsl_bytes
from ca_bundle_extractor.adapters.tsl_walker import TslServiceWalker, local_name
from ca_bundle_extractor.domain.vocabulary import (
    UNKNOWN,
    ServiceExtension,
    ServiceStatus,
    ServiceType,
)
from tests.conftest import (
    ESEALS_URI,
    ESIGNATURES_URI,
    ProviderEntry,
    ServiceEntry,
    build_tsl,
    fixture_path,
    single_service_tsl,
)

C1 = "MIIBCgKCAQEA" * 8
C2 = "MIICIjANBgkqhkiG9w0BAQEF" * 4


def _walk(data: bytes) -> list:
    return list(TslServiceWalker().walk(parse_tsl_bytes(data)))


def _walk_sample() -> list:
    return _walk(fixture_path("tsl_sample.xml").read_bytes())


class TestSampleDocument:
    """
    GIVEN the sample trusted list (two providers, six services)
    WHEN it is walked
    THEN every service comes out once, in document order, with resolved labels.
    """

    def test_yields_every_service_in_order(self) -> None:
        services = _walk_sample()
        assert [s.service_name for s in services] == [
            "Alpha Qualified CA 1",
            "Alpha Qualified CA 0 (retired)",
            "Alpha Time Stamping Unit",
            "Beta Qualified CA for eSeals and eSignatures",
            "Beta CA with misspelt type",
            "Beta CA without certificate",
        ]

    def test_provider_name_is_first_name(self) -> None:
        services = _walk_sample()
        assert services[0].provider_name == "Alpha Trust S.p.A."
        assert services[3].provider_name == "Beta Certificazione S.r.l."

    def test_labels_are_resolved(self) -> None:
        services = _walk_sample()
        assert services[0].service_type is ServiceType.CA_QC
        assert services[0].status is ServiceStatus.GRANTED
        assert services[1].status is ServiceStatus.WITHDRAWN
        assert services[2].service_type is ServiceType.TSA_QTST

    def test_only_additional_service_information_counts_as_extension(self) -> None:
        """The Qualifications extension of the first service is not a label."""
        services = _walk_sample()
        assert services[0].extensions == frozenset({ServiceExtension.ESIGNATURES})
        assert services[2].extensions == frozenset()

    def test_multiple_extensions(self) -> None:
        services = _walk_sample()
        assert services[3].extensions == frozenset(
            {ServiceExtension.ESEALS, ServiceExtension.ESIGNATURES}
        )

    def test_misspelt_type_is_unknown(self) -> None:
        services = _walk_sample()
        assert services[4].service_type is UNKNOWN

    def test_certificate_whitespace_is_ignored(self) -> None:
        services = _walk_sample()
        assert services[0].certificate == base64.b64decode(C1)
        assert services[1].certificate == base64.b64decode(C2)
        assert services[3].certificate == base64.b64decode(C2)

    def test_subject_name_only_identity_has_no_certificate(self) -> None:
        services = _walk_sample()
        assert services[5].certificate == b""


class TestNamespaces:
    def test_unnamespaced_document(self, certificate_der: bytes) -> None:
        """
        GIVEN a trusted list without the ETSI namespace
        WHEN it is walked
        THEN elements are still matched by local name.
        """
        data = build_tsl(
            [ProviderEntry(services=[ServiceEntry(certificate=certificate_der)])],
            namespaced=False,
        )
        [service] = _walk(data)
        assert service.service_type is ServiceType.CA_QC
        assert service.extensions == frozenset({ServiceExtension.ESIGNATURES})
        assert service.certificate == certificate_der

    def test_local_name_of_comment_is_none(self) -> None:
        root = etree.fromstring(b"<a><!-- note --><b/></a>")
        assert [local_name(child) for child in root] == [None, "b"]


class TestMissingElements:
    """Missing pieces produce defaults; the walk never aborts."""

    def test_missing_type_and_status(self) -> None:
        with capture_logs() as logs:
            [service] = _walk(single_service_tsl(ServiceEntry(type_uri=None, status_uri=None)))
        assert service.service_type is UNKNOWN
        assert service.status is UNKNOWN
        assert any(
            entry["event"] == "walker.malformed_service" and entry["code"] == "MALFORMED_SERVICE"
            for entry in logs
        )

    def test_missing_certificate(self) -> None:
        [service] = _walk(single_service_tsl(ServiceEntry(certificate=None)))
        assert service.certificate == b""

    def test_invalid_base64_gives_empty_certificate(self) -> None:
        data = single_service_tsl(ServiceEntry(certificate=b"\x30\x03")).replace(
            base64.b64encode(b"\x30\x03"), b"@@not-base64@@"
        )
        [service] = _walk(data)
        assert service.certificate == b""

    def test_extension_without_uri_is_unknown(self) -> None:
        data = single_service_tsl(ServiceEntry(extension_uris=(ESIGNATURES_URI,))).replace(
            ESIGNATURES_URI.encode(), b""
        )
        [service] = _walk(data)
        assert service.extensions == frozenset({UNKNOWN})

    def test_extensions_without_additional_information_are_ignored(self) -> None:
        [service] = _walk(single_service_tsl(ServiceEntry(extension_uris=(), plain_extensions=2)))
        assert service.extensions == frozenset()

    def test_missing_service_information(self) -> None:
        data = (
            b"<TrustServiceStatusList><TrustServiceProviderList><TrustServiceProvider>"
            b"<TSPServices><TSPService/></TSPServices>"
            b"</TrustServiceProvider></TrustServiceProviderList></TrustServiceStatusList>"
        )
        [service] = _walk(data)
        assert service.service_type is UNKNOWN
        assert service.provider_name is None

    def test_provider_without_services_is_skipped(self, certificate_der: bytes) -> None:
        data = build_tsl([
            ProviderEntry(name="Empty", services=[]),
            ProviderEntry(name="Full", services=[ServiceEntry(certificate=certificate_der)]),
        ]).replace(b"<tsl:TSPServices></tsl:TSPServices>", b"")
        services = _walk(data)
        assert [s.provider_name for s in services] == ["Full"]

    def test_no_provider_list(self) -> None:
        assert _walk(b"<TrustServiceStatusList/>") == []

    def test_services_across_providers_keep_order(self) -> None:
        data = build_tsl([
            ProviderEntry(name="P1", services=[ServiceEntry(name="a"), ServiceEntry(name="b")]),
            ProviderEntry(name="P2", services=[ServiceEntry(name="c", extension_uris=(ESEALS_URI,))]),
        ])
        services = _walk(data)
        assert [(s.provider_name, s.service_name) for s in services] == [
            ("P1", "a"),
            ("P1", "b"),
            ("P2", "c"),
        ]
