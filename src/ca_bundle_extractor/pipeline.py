"""
Pipeline — the export pass from parsed trusted list to PEM bundle.

Domain layer — sequencing only. All I/O is injected via ports
(ServiceWalker, BundleSink).

    Initialize → Stream → Finalize

    for each ResolvedService from the walker:
        accept(service, policy)?
          no  → discarded (reason: filtered)
          yes → encode_pem(certificate)
                  failure → discarded (reason: invalid_certificate)
                  success → sink.write(block)
                              failure → abort the pass if the code is fatal
                              success → exported
    sink.flush() → ExportStats

Recoverable failures are counted and logged per service; a fatal one, such as
a sink failure, short-circuits through the railway to the caller unchanged.
"""

from __future__ import annotations

import structlog
from lxml import etree
from railway.failure import ErrorCode, FailureDescription
from railway.result import Failure, Result, Success

from ca_bundle_extractor.domain.filtering import accept
from ca_bundle_extractor.domain.models import ExportStats, FilterPolicy, ResolvedService
from ca_bundle_extractor.domain.pem import describe_certificate, encode_pem
from ca_bundle_extractor.domain.ports import BundleSink, ServiceWalker

log = structlog.get_logger()


class _Counters:
    """Mutable tallies for a single pass; frozen into ExportStats at the end."""

    __slots__ = ("exported", "discarded", "invalid_certificates")

    def __init__(self) -> None:
        self.exported = 0
        self.discarded = 0
        self.invalid_certificates = 0

    def freeze(self) -> ExportStats:
        return ExportStats(
            exported=self.exported,
            discarded=self.discarded,
            invalid_certificates=self.invalid_certificates,
        )


def _export_service(service: ResolvedService, sink: BundleSink) -> Result[int]:
    """Encode one accepted service and hand the block to the sink."""
    return encode_pem(service.certificate).flat_map(sink.write)


def _record_export(service: ResolvedService, counters: _Counters) -> None:
    counters.exported += 1
    log.debug(
        "pipeline.exported",
        provider=service.provider_name,
        service=service.service_name,
        subject=describe_certificate(service.certificate),
    )


def _record_discard(service: ResolvedService, error: FailureDescription, counters: _Counters) -> None:
    counters.discarded += 1
    if error.code is ErrorCode.INVALID_CERTIFICATE:
        counters.invalid_certificates += 1
    log.warning(
        "pipeline.discarded",
        reason=error.code.value.lower(),
        provider=service.provider_name,
        service=service.service_name,
        detail=error.message,
    )


def run_pipeline(
    document: etree._Element,
    policy: FilterPolicy,
    sink: BundleSink,
    walker: ServiceWalker,
) -> Result[ExportStats]:
    """
    Make one pass over every service in `document` and write the accepted ones.

    Returns Result[ExportStats] on success; exported + discarded equals
    the number of services visited. A recoverable failure (see
    ErrorCode.is_fatal) discards the service and the pass goes on; a fatal
    one, such as the sink's OUTPUT_WRITE_FAILURE on a write or the final
    flush, is returned at once. Blocks written before that point remain
    in the output.
    """
    counters = _Counters()

    for service in walker.walk(document):
        if not accept(service, policy):
            counters.discarded += 1
            log.debug(
                "pipeline.discarded",
                reason="filtered",
                provider=service.provider_name,
                service=service.service_name,
            )
            continue

        match _export_service(service, sink):
            case Success(_):
                _record_export(service, counters)
            case Failure(err) if not err.code.is_fatal:
                _record_discard(service, err, counters)
            case Failure(err):
                log.error(
                    "pipeline.aborted",
                    exported=counters.exported,
                    discarded=counters.discarded,
                    error=err.describe(),
                )
                return Result.failure_from(err)

    return sink.flush().map(lambda _total: counters.freeze()).peek(
        lambda stats: log.info(
            "pipeline.complete",
            exported=stats.exported,
            discarded=stats.discarded,
            invalid_certificates=stats.invalid_certificates,
        )
    )
