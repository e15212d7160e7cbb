"""
Application entry point — command line, configuration and wiring.

Composition root: creates concrete adapters, resolves the input source,
loads the trusted list, opens the output and runs the export pipeline.

This is the ONLY place where concrete classes are instantiated and the
only place where a Result is turned into an exit status.

Responsibilities:
  1. Load and validate configuration from environment
  2. Configure structlog (standard error; standard output carries the bundle)
  3. Resolve SOURCE (local path or @fetch:XX) and load the document
  4. Open OUTPUT only once the document parsed, then run the pipeline
  5. Print progress lines and the final summary to standard error
"""

from __future__ import annotations

import logging
import sys
from typing import NoReturn

import click
import structlog
from lxml import etree
from railway import ErrorCode, LoggingExecutionContext
from railway.failure import FailureDescription
from railway.result import Result

from ca_bundle_extractor import __version__
from ca_bundle_extractor.adapters.bundle_sink import open_bundle_sink
from ca_bundle_extractor.adapters.sources import SourceResolver, TslSource
from ca_bundle_extractor.adapters.tsl_loader import FileTslLoader, HttpTslLoader
from ca_bundle_extractor.adapters.tsl_walker import TslServiceWalker
from ca_bundle_extractor.config import AppSettings
from ca_bundle_extractor.domain.models import ExportStats, FilterPolicy, FilterRule
from ca_bundle_extractor.domain.vocabulary import (
    ServiceExtension,
    ServiceStatus,
    ServiceType,
    parse_label,
)
from ca_bundle_extractor.pipeline import run_pipeline

DONT_CARE = ("", "*")

EPILOG = """\
\b
Examples:
    ca-bundle-extractor TSL-IT.xml bundle.crt     (parse local file, save to local file)
    ca-bundle-extractor TSL-IT.xml > bundle.crt   (parse local file, redirected stdout)
    ca-bundle-extractor @fetch:IT bundle.crt      (download remote file, save to local file)
"""


def configure_structlog(log_level: str = "INFO") -> None:
    """
    Configure structlog for human-readable console output on standard error.

    Standard output is reserved for the PEM bundle when no OUTPUT is given.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def parse_filter_expression(expression: str) -> FilterRule:
    """
    Parse TYPE:STATUS:EXTENSION into a FilterRule.

    An empty segment or "*" means don't care; trailing segments may be
    omitted ("CA/QC:granted" leaves the extension open). Raises ValueError
    on unknown labels or more than three segments.
    """
    parts = expression.split(":")
    if len(parts) > 3:
        raise ValueError(f"Expected TYPE:STATUS:EXTENSION, got {expression!r}")
    parts += [""] * (3 - len(parts))
    type_part, status_part, extension_part = (part.strip() for part in parts)
    return FilterRule(
        required_type=None if type_part in DONT_CARE else parse_label(type_part, ServiceType),
        required_status=None if status_part in DONT_CARE else parse_label(status_part, ServiceStatus),
        required_extension=(
            None if extension_part in DONT_CARE else parse_label(extension_part, ServiceExtension)
        ),
    )


def _progress(message: str = "") -> None:
    click.echo(message, err=True)


def _load_document(
    source: TslSource,
    file_loader: FileTslLoader,
    http_loader: HttpTslLoader,
) -> Result[etree._Element]:
    if source.remote:
        _progress(f"[+] Downloading remote file from: {source.location}")
        return http_loader.load(source.location).peek(
            lambda _root: _progress("[+] Parsing downloaded data")
        )
    _progress(f"[+] Parsing local XML file: {source.location}")
    return file_loader.load(source.location)


def _write_bundle(
    document: etree._Element,
    output: str | None,
    policy: FilterPolicy,
    walker: TslServiceWalker,
) -> Result[ExportStats]:
    """Open OUTPUT and run the pipeline; errors opening or closing it also fail the run."""
    try:
        with open_bundle_sink(output) as sink:
            return run_pipeline(document, policy, sink, walker)
    except OSError as e:
        return Result.failure(ErrorCode.OUTPUT_WRITE_FAILURE, f"Output {output} failed", e)


def _fail(error: FailureDescription) -> NoReturn:
    structlog.get_logger().error("app.failed", code=error.code.value, error=error.describe())
    _progress(f"Error: {error.describe()}")
    _progress()
    sys.exit(1)


@click.command(epilog=EPILOG, context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("source", required=False)
@click.argument("output", required=False)
@click.option("-v", "--verbose", is_flag=True, default=False, help="Trace every provider and service.")
@click.option(
    "filter_expressions",
    "--filter",
    multiple=True,
    metavar="TYPE:STATUS:EXTENSION",
    help="Acceptance rule (repeatable, any rule matches); '*' or empty means don't care.",
)
@click.option("--list-countries", is_flag=True, default=False, help="Show the @fetch country table and exit.")
@click.version_option(__version__)
def main(
    source: str | None,
    output: str | None,
    verbose: bool,
    filter_expressions: tuple[str, ...],
    list_countries: bool,
) -> None:
    """Build a PEM bundle of trusted CAs from an ETSI trusted list (TSL).

    SOURCE is a TSL XML file or @fetch:XX for a configured country.
    OUTPUT is the bundle file; omitted or '-' writes to standard output.
    """
    try:
        settings = AppSettings()
    except Exception as e:
        _progress(f"FATAL: Configuration error: {e}")
        sys.exit(1)

    configure_structlog("DEBUG" if verbose else settings.log_level)
    log = structlog.get_logger()

    http_loader = HttpTslLoader(
        timeout=settings.fetch.timeout_seconds,
        attempts=settings.fetch.attempts,
    )
    resolver = SourceResolver(
        countries=settings.fetch.countries,
        lotl_url=settings.fetch.lotl_url,
        lotl_loader=http_loader,
    )

    if list_countries:
        for country, url in resolver.known_countries().items():
            click.echo(f"{country}\t{url}")
        return

    if not source:
        raise click.UsageError("Missing argument 'SOURCE'.")

    if filter_expressions:
        try:
            policy = tuple(parse_filter_expression(expr) for expr in filter_expressions)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--filter") from e
    else:
        policy = settings.policy()

    log.info(
        "app.starting",
        version=__version__,
        source=source,
        output=output or "<stdout>",
        policy=[rule.describe() for rule in policy],
    )

    file_loader = FileTslLoader()
    walker = TslServiceWalker()
    context = LoggingExecutionContext(operation="BundleExport", log_level=logging.DEBUG)

    result = context.execute(
        lambda: resolver.resolve(source)
        .flat_map(lambda resolved: _load_document(resolved, file_loader, http_loader))
        .flat_map(lambda document: _write_bundle(document, output, policy, walker))
    )

    if result.is_failure():
        _fail(result.error())

    _progress(f"[+] {result.value().summary()}")
    _progress()


if __name__ == "__main__":
    main()
