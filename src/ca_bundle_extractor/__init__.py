"""
ca_bundle_extractor — trusted CA bundle generator for eSignatures.

Reads an ETSI trusted list (TSL), keeps the services whose type, status and
additional service information match an acceptance policy, and writes their
certificates as a flat PEM bundle.

Error handling follows the Railway-Oriented Programming style of the bundled
`railway` package: adapters return Result values, never raise.
"""

__version__ = "1.0.0"
