"""Finds the claims that contributed to a value shown at a display path"""

from typing import Any, Optional

from loguru import logger

from pdtf_claims.core import pointer
from pdtf_claims.core.models import Claim
from pdtf_claims.provenance.claims_map import ClaimsMap
from pdtf_claims.state.aggregator import claim_order_key


def dedupe_claims(claims: list[Claim]) -> list[Claim]:
    """Drop repeated claim objects, keeping first occurrences in order"""
    seen: set[int] = set()
    unique = []
    for claim in claims:
        if id(claim) in seen:
            continue
        seen.add(id(claim))
        unique.append(claim)
    return unique


def contributing_claims(claims_map: ClaimsMap, display_path: str, value: Any = None) -> list[Claim]:
    """
    Claims that contributed to `value` as displayed at `display_path`.

    With no value, the display path is looked up directly. Otherwise every
    leaf under the value is looked up at `display_path` + its relative
    segments, and the union is returned once per claim, oldest first.
    Claims with equal times keep the order they were applied in.
    Paths with no recorded provenance simply contribute nothing.

    Args:
        claims_map: Provenance index built from the same claims as the state
        display_path: Path of the value in the aggregated document
        value: The value currently shown there, if any

    Returns:
        Deduplicated claims sorted by verification time
    """
    if value is None:
        found = claims_map.lookup(display_path)
    else:
        found = []
        for relative, _leaf in pointer.iter_leaves(value):
            found.extend(claims_map.lookup(pointer.join(display_path, relative)))

    result = sorted(
        dedupe_claims(found),
        key=lambda claim: (claim_order_key(claim), claims_map.position(claim)),
    )
    logger.debug(
        "Resolved {count} contributing claims for {path}",
        count=len(result),
        path=display_path or "/",
    )
    return result


class ContributingClaimsResolver:
    """Binds a claims map so presentation code can ask "who said this?" repeatedly"""

    def __init__(self, claims_map: ClaimsMap) -> None:
        self.claims_map = claims_map
        self.lookups = 0

    def resolve(self, display_path: str, value: Any = None) -> list[Claim]:
        self.lookups += 1
        return contributing_claims(self.claims_map, display_path, value)

    def latest(self, display_path: str, value: Any = None) -> Optional[Claim]:
        """The most recent contributing claim, if any"""
        found = self.resolve(display_path, value)
        return found[-1] if found else None
