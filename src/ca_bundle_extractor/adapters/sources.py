"""
Source resolution — map the SOURCE argument to a concrete document location.

  "TSL-IT.xml"  → local file
  "@fetch:IT"   → country table lookup → remote URL
                  (falls back to the EU List of Trusted Lists when the country
                   is not configured and a LOTL URL is set)

The LOTL lookup scans OtherTSLPointer entries for a matching SchemeTerritory
and takes its TSLLocation, preferring pointers whose MimeType announces an
XML trusted list (the LOTL also points at PDF renditions).
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass

import structlog
from lxml import etree
from railway import ErrorCode
from railway.result import Result

from ca_bundle_extractor.adapters.tsl_walker import local_name
from ca_bundle_extractor.domain.ports import TslLoader

log = structlog.get_logger()

FETCH_PATTERN = re.compile(r"^@fetch:([a-z]{2})$", re.IGNORECASE)
TSL_XML_MIME_TYPE = "application/vnd.etsi.tsl+xml"


@dataclass(frozen=True, slots=True)
class TslSource:
    """A resolved document location and whether it must be downloaded."""

    location: str
    remote: bool = False
    country: str | None = None


def _descendants(element: etree._Element, name: str) -> list[etree._Element]:
    return [node for node in element.iter() if local_name(node) == name]


def find_country_tsl_url(lotl_root: etree._Element, country: str) -> str | None:
    """Return the TSLLocation the LOTL publishes for `country`, or None."""
    fallback: str | None = None
    for pointer in _descendants(lotl_root, "OtherTSLPointer"):
        territories = _descendants(pointer, "SchemeTerritory")
        if not territories or (territories[0].text or "").strip().upper() != country:
            continue
        locations = _descendants(pointer, "TSLLocation")
        if not locations or not locations[0].text:
            continue
        location = locations[0].text.strip()
        mime_types = [(node.text or "").strip() for node in _descendants(pointer, "MimeType")]
        if TSL_XML_MIME_TYPE in mime_types:
            return location
        if fallback is None and not location.lower().endswith(".pdf"):
            fallback = location
    return fallback


class SourceResolver:
    """
    Resolve a SOURCE argument into a TslSource.

    `countries` maps upper-case two-letter codes to trusted-list URLs.
    `lotl_loader` is only used when a country is missing from the table
    and `lotl_url` is configured.
    """

    def __init__(
        self,
        countries: Mapping[str, str],
        lotl_url: str | None = None,
        lotl_loader: TslLoader | None = None,
    ) -> None:
        self._countries = {code.upper(): url for code, url in countries.items()}
        self._lotl_url = lotl_url
        self._lotl_loader = lotl_loader

    def resolve(self, source: str) -> Result[TslSource]:
        if not source:
            return Result.failure(ErrorCode.CONFIGURATION_ERROR, "No input source given")

        match = FETCH_PATTERN.match(source)
        if match is None:
            return Result.success(TslSource(location=source))

        country = match.group(1).upper()
        url = self._countries.get(country)
        if url is not None:
            return Result.success(TslSource(location=url, remote=True, country=country))
        return self._resolve_from_lotl(country, match.group(1))

    def _resolve_from_lotl(self, country: str, requested: str) -> Result[TslSource]:
        unknown = Result.failure(
            ErrorCode.CONFIGURATION_ERROR,
            f'Unknown country "{requested}" for remote fetch',
        )
        if self._lotl_url is None or self._lotl_loader is None:
            return unknown

        def pick_pointer(lotl_root: etree._Element) -> Result[TslSource]:
            url = find_country_tsl_url(lotl_root, country)
            if url is None:
                return unknown
            log.info("sources.lotl_pointer_found", country=country, url=url)
            return Result.success(TslSource(location=url, remote=True, country=country))

        log.info("sources.lotl_lookup", country=country, lotl_url=self._lotl_url)
        return self._lotl_loader.load(self._lotl_url).flat_map(pick_pointer)

    def known_countries(self) -> dict[str, str]:
        return dict(sorted(self._countries.items()))
