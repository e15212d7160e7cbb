"""
Vocabulary tables — ETSI trusted-list URIs mapped to short labels.

A trusted list identifies service types, statuses and additional service
information with canonical ETSI URIs. The filter policy speaks in short labels
("CA/QC", "granted", "eSignatures"), so every URI read from the document is
resolved against one of the tables below.

Resolution is exact string equality: no case folding, no whitespace trimming.
Any spelling not in a table resolves to UNKNOWN, which is distinct from every
label and from None (the filter's "don't care").

The tables are process-wide constants exposed as read-only mappings.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum, unique
from types import MappingProxyType
from typing import Final, TypeVar


class UnknownLabel:
    """Sentinel type for a URI that no table recognises."""

    _instance: UnknownLabel | None = None

    def __new__(cls) -> UnknownLabel:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNKNOWN"


UNKNOWN: Final = UnknownLabel()


@unique
class ServiceType(Enum):
    CA_QC = "CA/QC"
    IDV = "IdV"
    TSA = "TSA"
    TSA_QTST = "TSA/QTST"
    TSA_TSS_QC = "TSA/TSS-QC"


@unique
class ServiceStatus(Enum):
    DEPRECATED = "deprecated"
    GRANTED = "granted"
    RECOGNISED = "recognised"
    WITHDRAWN = "withdrawn"


@unique
class ServiceExtension(Enum):
    ESEALS = "eSeals"
    ESIGNATURES = "eSignatures"
    WEBSITE_AUTHENTICATION = "WebSiteAuthentication"


SERVICE_TYPE_URIS: Final[Mapping[ServiceType, str]] = MappingProxyType({
    ServiceType.CA_QC: "http://uri.etsi.org/TrstSvc/Svctype/CA/QC",
    ServiceType.IDV: "http://uri.etsi.org/TrstSvc/Svctype/IdV",
    ServiceType.TSA: "http://uri.etsi.org/TrstSvc/Svctype/TSA",
    ServiceType.TSA_QTST: "http://uri.etsi.org/TrstSvc/Svctype/TSA/QTST",
    ServiceType.TSA_TSS_QC: "http://uri.etsi.org/TrstSvc/Svctype/TSA/TSS-QC",
})

SERVICE_STATUS_URIS: Final[Mapping[ServiceStatus, str]] = MappingProxyType({
    ServiceStatus.DEPRECATED: "http://uri.etsi.org/TrstSvc/TrustedList/Svcstatus/deprecatedatnationallevel",
    ServiceStatus.GRANTED: "http://uri.etsi.org/TrstSvc/TrustedList/Svcstatus/granted",
    ServiceStatus.RECOGNISED: "http://uri.etsi.org/TrstSvc/TrustedList/Svcstatus/recognisedatnationallevel",
    ServiceStatus.WITHDRAWN: "http://uri.etsi.org/TrstSvc/TrustedList/Svcstatus/withdrawn",
})

SERVICE_EXTENSION_URIS: Final[Mapping[ServiceExtension, str]] = MappingProxyType({
    ServiceExtension.ESEALS: "http://uri.etsi.org/TrstSvc/TrustedList/SvcInfoExt/ForeSeals",
    ServiceExtension.ESIGNATURES: "http://uri.etsi.org/TrstSvc/TrustedList/SvcInfoExt/ForeSignatures",
    ServiceExtension.WEBSITE_AUTHENTICATION: (
        "http://uri.etsi.org/TrstSvc/TrustedList/SvcInfoExt/ForWebSiteAuthentication"
    ),
})


L = TypeVar("L", bound=Enum)


def resolve(uri: str | None, table: Mapping[L, str]) -> L | UnknownLabel:
    """Return the label whose canonical URI equals `uri` exactly, else UNKNOWN."""
    if uri is None:
        return UNKNOWN
    for label, canonical in table.items():
        if canonical == uri:
            return label
    return UNKNOWN


def resolve_service_type(uri: str | None) -> ServiceType | UnknownLabel:
    return resolve(uri, SERVICE_TYPE_URIS)


def resolve_service_status(uri: str | None) -> ServiceStatus | UnknownLabel:
    return resolve(uri, SERVICE_STATUS_URIS)


def resolve_service_extension(uri: str | None) -> ServiceExtension | UnknownLabel:
    return resolve(uri, SERVICE_EXTENSION_URIS)


def parse_label(value: str, vocabulary: type[L]) -> L:
    """
    Look up a label by its short name, e.g. parse_label("granted", ServiceStatus).

    Used when reading filter rules from configuration. Raises ValueError
    listing the accepted names when `value` is not one of them.
    """
    try:
        return vocabulary(value)
    except ValueError:
        accepted = ", ".join(member.value for member in vocabulary)
        raise ValueError(
            f"Unknown {vocabulary.__name__} label {value!r} (expected one of: {accepted})"
        ) from None


def label_name(label: Enum | UnknownLabel | None) -> str:
    """Short printable form of a label: its value, "UNKNOWN", or "*" for don't-care."""
    if label is None:
        return "*"
    if label is UNKNOWN:
        return "UNKNOWN"
    return str(label.value)
