"""
TSL walker adapter — lxml element tree → ResolvedService records.

Adapter layer — implements the ServiceWalker port.

Traversal (element names are matched by local name, so both ETSI-namespaced
and un-namespaced documents are accepted):

  TrustServiceProviderList
    └─ TrustServiceProvider          (TSPInformation/TSPName/Name[0] for tracing)
         └─ TSPServices/TSPService
              └─ ServiceInformation
                   ├─ ServiceTypeIdentifier              → type table
                   ├─ ServiceStatus                      → status table
                   ├─ ServiceInformationExtensions/Extension
                   │    └─ AdditionalServiceInformation/URI → extension table
                   └─ ServiceDigitalIdentity/DigitalId/X509Certificate (first)

Missing elements never abort the walk: they are logged as malformed-service
conditions and replaced with UNKNOWN / empty defaults.
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Iterator

import structlog
from lxml import etree
from railway import ErrorCode

from ca_bundle_extractor.domain.models import ExtensionLabel, ResolvedService
from ca_bundle_extractor.domain.vocabulary import (
    label_name,
    resolve_service_extension,
    resolve_service_status,
    resolve_service_type,
)

log = structlog.get_logger()

MALFORMED = ErrorCode.MALFORMED_SERVICE.value


# ─────────────────────── Element Navigation ───────────────────────


def local_name(element: etree._Element) -> str | None:
    # Comments and processing instructions have a callable tag.
    if not isinstance(element.tag, str):
        return None
    return etree.QName(element).localname


def _children(element: etree._Element | None, name: str) -> Iterator[etree._Element]:
    """Direct children of `element` with local name `name`, in document order."""
    if element is None:
        return
    for child in element:
        if local_name(child) == name:
            yield child


def _child(element: etree._Element | None, name: str) -> etree._Element | None:
    return next(_children(element, name), None)


def _path(element: etree._Element | None, *names: str) -> etree._Element | None:
    """Follow the first matching child at each step of `names`."""
    for name in names:
        element = _child(element, name)
    return element


def _text(element: etree._Element | None) -> str | None:
    if element is None or element.text is None:
        return None
    return element.text


# ─────────────────────── Field Extraction ───────────────────────


def _extract_extensions(service_info: etree._Element) -> frozenset[ExtensionLabel]:
    """
    Resolve each extension's AdditionalServiceInformation URI.

    Extensions without an AdditionalServiceInformation child are ignored;
    one that has it but no URI contributes UNKNOWN.
    """
    labels: set[ExtensionLabel] = set()
    container = _child(service_info, "ServiceInformationExtensions")
    for extension in _children(container, "Extension"):
        additional = _child(extension, "AdditionalServiceInformation")
        if additional is None:
            continue
        uri = _text(_child(additional, "URI"))
        label = resolve_service_extension(uri)
        log.debug("walker.extension", uri=uri, label=label_name(label))
        labels.add(label)
    return frozenset(labels)


def _extract_certificate(service_info: etree._Element) -> bytes:
    """
    Decode the first X509Certificate of the service's digital identity.

    Returns b"" when the element is absent, empty, or not valid base64.
    """
    identity = _child(service_info, "ServiceDigitalIdentity")
    for digital_id in _children(identity, "DigitalId"):
        encoded = _text(_child(digital_id, "X509Certificate"))
        if encoded is None:
            continue
        compact = "".join(encoded.split())
        try:
            return base64.b64decode(compact, validate=True)
        except (binascii.Error, ValueError):
            log.warning(
                "walker.malformed_service",
                code=MALFORMED,
                reason="certificate is not valid base64",
            )
            return b""
    return b""


def _resolve_service(service: etree._Element, provider_name: str | None) -> ResolvedService:
    service_info = _child(service, "ServiceInformation")
    if service_info is None:
        log.warning(
            "walker.malformed_service",
            code=MALFORMED,
            provider=provider_name,
            reason="missing ServiceInformation",
        )
        return ResolvedService(provider_name=provider_name)

    type_uri = _text(_child(service_info, "ServiceTypeIdentifier"))
    status_uri = _text(_child(service_info, "ServiceStatus"))
    service_name = _text(_path(service_info, "ServiceName", "Name"))

    if type_uri is None or status_uri is None:
        log.warning(
            "walker.malformed_service",
            code=MALFORMED,
            provider=provider_name,
            service=service_name,
            reason="missing ServiceTypeIdentifier or ServiceStatus",
        )

    resolved = ResolvedService(
        service_type=resolve_service_type(type_uri),
        status=resolve_service_status(status_uri),
        extensions=_extract_extensions(service_info),
        certificate=_extract_certificate(service_info),
        provider_name=provider_name,
        service_name=service_name,
    )
    log.debug(
        "walker.service",
        provider=provider_name,
        service=service_name,
        type=label_name(resolved.service_type),
        status=label_name(resolved.status),
        has_certificate=bool(resolved.certificate),
    )
    return resolved


# ─────────────────────── Public Walker Class ───────────────────────


class TslServiceWalker:
    """
    Lazily yield one ResolvedService per TSPService, provider by provider.

    Implements the ServiceWalker port. Single forward pass, no backtracking.
    """

    def walk(self, root: etree._Element) -> Iterator[ResolvedService]:
        provider_list = _child(root, "TrustServiceProviderList")
        if provider_list is None:
            log.warning("walker.no_providers", root=local_name(root))
            return

        for provider in _children(provider_list, "TrustServiceProvider"):
            provider_name = _text(_path(provider, "TSPInformation", "TSPName", "Name"))
            log.debug("walker.provider", provider=provider_name)

            services = _child(provider, "TSPServices")
            if services is None:
                log.warning(
                    "walker.malformed_provider",
                    provider=provider_name,
                    reason="missing TSPServices",
                )
                continue

            for service in _children(services, "TSPService"):
                yield _resolve_service(service, provider_name)

