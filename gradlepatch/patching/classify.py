"""
Validator: classifies each fragment against the current document.

Substring based on purpose; surrounding content written by other tools is
never parsed.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Iterable, List

from .errors import PatternNotFound
from .fragments import FragmentSpec, TargetVersionSet
from .sanitize import locate_fragment

logger = logging.getLogger(__name__)


class FragmentState(str, Enum):
    absent = "absent"
    correct_present = "correct_present"
    stale_present = "stale_present"


def missing_literals(document: str, spec: FragmentSpec, versions: TargetVersionSet) -> List[str]:
    """Required literals not found in the fragment's region (all of them if unboundable)."""
    required = spec.required_literals(versions)
    try:
        span = locate_fragment(document, spec)
    except PatternNotFound:
        return required
    if span is None:
        return required
    region = span.text(document)
    return [lit for lit in required if lit not in region]


def classify_one(document: str, spec: FragmentSpec, versions: TargetVersionSet) -> FragmentState:
    count = document.count(spec.marker)
    if count == 0:
        return FragmentState.absent
    if count > 1:
        logger.info("marker %r appears %d times", spec.marker, count)
        return FragmentState.stale_present

    missing = missing_literals(document, spec, versions)
    if missing:
        logger.info("fragment %r is stale; missing %s", spec.marker, missing)
        return FragmentState.stale_present
    return FragmentState.correct_present


def classify(
    document: str, specs: Iterable[FragmentSpec], versions: TargetVersionSet
) -> Dict[str, FragmentState]:
    return {spec.marker: classify_one(document, spec, versions) for spec in specs}
