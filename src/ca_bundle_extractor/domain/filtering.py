"""
Filter evaluator — decides whether a resolved service belongs in the bundle.

A policy is an ordered tuple of FilterRule: a service is accepted when ANY rule
matches, and a rule matches when ALL of its present fields hold. UNKNOWN labels
never equal a configured value, so an unrecognised URI can only pass through a
rule that leaves that dimension as "don't care".
"""

from __future__ import annotations

from ca_bundle_extractor.domain.models import FilterPolicy, ResolvedService


def accept(service: ResolvedService, policy: FilterPolicy) -> bool:
    """Return True if any rule of `policy` matches `service`. An empty policy accepts nothing."""
    return any(rule.matches(service) for rule in policy)
