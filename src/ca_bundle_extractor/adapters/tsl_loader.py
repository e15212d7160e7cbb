"""
Trusted-list loaders — local file or HTTP download, parsed with lxml.

Adapter layer — implements the TslLoader port twice:

  FileTslLoader  → read a local XML file
  HttpTslLoader  → GET the XML over HTTP(S) via httpx

Both parse with a hardened lxml parser (no entity expansion, no network
access from inside the parser). Any read, download or parse error is captured
into Result.failure(DOCUMENT_UNAVAILABLE, ...) — nothing leaks to the pipeline.

Retry/backoff via tenacity on transient network errors only (timeouts,
connection failures); HTTP error statuses fail immediately.
"""

from __future__ import annotations

from pathlib import Path

import httpx
import structlog
from lxml import etree
from railway import ErrorCode
from railway.result import Result
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

log = structlog.get_logger()

USER_AGENT = "ca-bundle-extractor"


def _xml_parser() -> etree.XMLParser:
    return etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        huge_tree=True,
    )


def parse_tsl_bytes(data: bytes) -> etree._Element:
    """Parse raw XML bytes into the document root. Raises etree.XMLSyntaxError on bad input."""
    return etree.fromstring(data, parser=_xml_parser())


class FileTslLoader:
    """
    Load a trusted list from the local filesystem.

    Implements the TslLoader port.
    """

    def load(self, location: str) -> Result[etree._Element]:
        """
        Read and parse the XML file at `location`.

        Returns Result[_Element] with the document root on success,
        or Result.failure(DOCUMENT_UNAVAILABLE, ...) on failure.
        """
        log.info("loader.parsing_local_file", path=location)
        return Result.from_computation(
            lambda: self._do_load(Path(location)),
            ErrorCode.DOCUMENT_UNAVAILABLE,
            f"Failed to parse XML data from {location}",
        )

    def _do_load(self, path: Path) -> etree._Element:
        data = path.read_bytes()
        root = parse_tsl_bytes(data)
        log.debug("loader.parsed", path=str(path), size_bytes=len(data))
        return root


class HttpTslLoader:
    """
    Download and parse a trusted list via HTTP GET.

    Implements the TslLoader port.
    Uses tenacity retry on transient network errors only.
    """

    def __init__(self, timeout: int = 60, attempts: int = 3) -> None:
        self._timeout = timeout
        self._attempts = attempts

    def load(self, location: str) -> Result[etree._Element]:
        """
        Download `location` and parse the body as XML.

        Returns Result[_Element] with the document root on success,
        or Result.failure(DOCUMENT_UNAVAILABLE, ...) on HTTP, network
        or parse failure.
        """
        log.info("loader.downloading", url=location)
        return (
            Result.from_computation(
                lambda: self._download(location),
                ErrorCode.DOCUMENT_UNAVAILABLE,
                f"Failed to download {location}",
            )
            .flat_map(
                lambda data: Result.from_computation(
                    lambda: parse_tsl_bytes(data),
                    ErrorCode.DOCUMENT_UNAVAILABLE,
                    "Failed to parse downloaded XML data",
                )
            )
        )

    def _download(self, url: str) -> bytes:
        """HTTP GET with retry — exceptions caught by from_computation."""
        retrying = Retrying(
            stop=stop_after_attempt(self._attempts),
            wait=wait_exponential(multiplier=1, min=0.1, max=30),
            retry=retry_if_exception_type((httpx.TimeoutException, httpx.NetworkError)),
            reraise=True,
        )
        return retrying(self._do_get, url)

    def _do_get(self, url: str) -> bytes:
        with httpx.Client(
            timeout=self._timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        ) as client:
            response = client.get(url)
            response.raise_for_status()
            data = response.content
            log.info("loader.fetch_complete", url=url, size_bytes=len(data))
            return data
