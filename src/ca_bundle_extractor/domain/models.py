"""
Domain models — immutable data structures for resolved services and filter policies.

These are pure value objects. A ResolvedService is derived from one TSPService
entry of the trusted list; a FilterPolicy is supplied by configuration. Neither
is persisted.

All models are frozen dataclasses (immutable) following functional principles.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ca_bundle_extractor.domain.vocabulary import (
    UNKNOWN,
    ServiceExtension,
    ServiceStatus,
    ServiceType,
    UnknownLabel,
)

type TypeLabel = ServiceType | UnknownLabel
type StatusLabel = ServiceStatus | UnknownLabel
type ExtensionLabel = ServiceExtension | UnknownLabel


@dataclass(frozen=True, slots=True)
class ResolvedService:
    """
    One trust service with its metadata resolved to labels.

    `certificate` holds the raw DER bytes of the first certificate in the
    service's digital identity, or b"" when none could be read.
    `provider_name` and `service_name` are carried for tracing only.
    """

    service_type: TypeLabel = UNKNOWN
    status: StatusLabel = UNKNOWN
    extensions: frozenset[ExtensionLabel] = frozenset()
    certificate: bytes = field(default=b"", repr=False)
    provider_name: str | None = None
    service_name: str | None = None


@dataclass(frozen=True, slots=True)
class FilterRule:
    """
    One conjunctive acceptance condition.

    Each field is optional; None means "don't care" for that dimension.
    A rule with every field None matches every service.
    """

    required_type: ServiceType | None = None
    required_status: ServiceStatus | None = None
    required_extension: ServiceExtension | None = None

    def matches(self, service: ResolvedService) -> bool:
        if self.required_type is not None and service.service_type is not self.required_type:
            return False
        if self.required_status is not None and service.status is not self.required_status:
            return False
        if (
            self.required_extension is not None
            and self.required_extension not in service.extensions
        ):
            return False
        return True

    def describe(self) -> str:
        """Render as TYPE:STATUS:EXTENSION with '*' for don't-care fields."""
        parts = (self.required_type, self.required_status, self.required_extension)
        return ":".join("*" if part is None else part.value for part in parts)


type FilterPolicy = tuple[FilterRule, ...]

DEFAULT_POLICY: FilterPolicy = (
    FilterRule(
        required_type=ServiceType.CA_QC,
        required_status=ServiceStatus.GRANTED,
        required_extension=ServiceExtension.ESIGNATURES,
    ),
)


@dataclass(frozen=True, slots=True)
class ExportStats:
    """
    Counters reported at the end of a pipeline pass.

    `invalid_certificates` is the subset of `discarded` that matched the
    policy but carried no usable certificate.
    """

    exported: int = 0
    discarded: int = 0
    invalid_certificates: int = 0

    @property
    def total(self) -> int:
        return self.exported + self.discarded

    @property
    def filtered(self) -> int:
        return self.discarded - self.invalid_certificates

    def summary(self) -> str:
        return f"Exported {self.exported} certificate(s), {self.discarded} discarded"
