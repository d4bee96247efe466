"""Applies a claim's path -> value entries onto a mutable document"""

import copy
from typing import Any, Optional

from loguru import logger

from pdtf_claims.core import pointer
from pdtf_claims.core.models import Claim, ClaimIssue, IssueSeverity, IssueType
from pdtf_claims.core.pointer import (
    MISSING,
    ContainerMismatchError,
    Lookup,
    MalformedPathError,
    PointerError,
)


def issue_for_pointer_error(
    error: PointerError,
    claim: Claim,
    path: str,
    claim_index: Optional[int] = None,
) -> ClaimIssue:
    """Translate a skipped entry into a recoverable issue"""
    if isinstance(error, ContainerMismatchError):
        issue_type = IssueType.CONTAINER_MISMATCH
    else:
        issue_type = IssueType.MALFORMED_PATH
    return ClaimIssue(
        severity=IssueSeverity.WARNING,
        issue_type=issue_type,
        message=str(error),
        claim_id=claim.id,
        claim_index=claim_index,
        path=path,
    )


def _step(container: Any, segment: str, path: str) -> Lookup:
    """
    Existing child of `container` at `segment`.

    Returns MISSING when the child may be created there (absent object key,
    or index equal to the array length).
    """
    if isinstance(container, dict):
        if segment in container:
            return Lookup(True, container[segment])
        return MISSING
    if isinstance(container, list):
        if not pointer.is_index(segment):
            raise ContainerMismatchError(
                f"Segment {segment!r} of {path!r} is not an index into an array"
            )
        index = int(segment)
        if index < len(container):
            return Lookup(True, container[index])
        if index == len(container):
            return MISSING
        raise ContainerMismatchError(
            f"Index {index} of {path!r} is past the end of an array of length {len(container)}"
        )
    raise ContainerMismatchError(
        f"Segment {segment!r} of {path!r} walks into a {type(container).__name__} value"
    )


def _assign(container: Any, segment: str, value: Any) -> None:
    if isinstance(container, list):
        index = int(segment)
        if index == len(container):
            container.append(value)
        else:
            container[index] = value
    else:
        container[segment] = value


def _check_fresh_chain(parts: list[str], path: str) -> None:
    # Newly created arrays are empty, so they can only be indexed at 0
    for segment in parts:
        if pointer.is_index(segment) and segment != "0":
            raise ContainerMismatchError(
                f"Index {segment} of {path!r} is past the end of a new empty array"
            )


def set_value(document: Any, path: str, value: Any) -> None:
    """
    Write a deep copy of `value` at a concrete path, replacing whatever was there.

    Missing intermediates are created: arrays when the next segment is an
    index, objects otherwise. Every check runs before the document is
    touched, so a failing write leaves it unchanged.

    Raises:
        MalformedPathError: root path, unparseable path or stray `-` segment
        ContainerMismatchError: the path walks through the wrong container kind
    """
    parts = pointer.segments(path)
    pointer.validate_write_segments(parts, path)

    container = document
    position = 0
    last = len(parts) - 1
    while position < last:
        child = _step(container, parts[position], path)
        if not child.found:
            break
        container = child.value
        position += 1

    if position == last:
        _step(container, parts[last], path)
        _assign(container, parts[last], copy.deepcopy(value))
        return

    # parts[position] is absent from `container`; build the rest fresh
    _check_fresh_chain(parts[position + 1:], path)
    node = copy.deepcopy(value)
    for segment in reversed(parts[position + 1:]):
        node = [node] if pointer.is_index(segment) else {segment: node}
    _assign(container, parts[position], node)


def concrete_path(document: Any, path: str) -> str:
    """Resolve an append path against `document`; other paths pass through"""
    if pointer.is_append_path(path):
        index = pointer.resolve_append_index(document, pointer.parent_of_append(path))
        return pointer.rewrite_append_path(path, index)
    return path


class DocumentMutator:
    """
    Applies claims onto a single document in place.

    Each (path, value) entry is applied independently: an entry that
    cannot be written is skipped and reported, the rest still apply.
    """

    def __init__(self, document: dict[str, Any]) -> None:
        self.document = document
        self.entries_applied = 0
        self.entries_skipped = 0

    def apply_claim(self, claim: Claim, claim_index: Optional[int] = None) -> list[ClaimIssue]:
        """
        Apply every entry of `claim` in the order the claim presents them.

        Returns:
            Issues for entries that were skipped
        """
        issues: list[ClaimIssue] = []
        for path, value in claim.claims.items():
            try:
                target = concrete_path(self.document, path)
                set_value(self.document, target, value)
            except (MalformedPathError, ContainerMismatchError) as exc:
                self.entries_skipped += 1
                logger.warning(
                    "Skipping entry {path} of claim {claim_id}: {error}",
                    path=path,
                    claim_id=claim.id,
                    error=str(exc),
                )
                issues.append(issue_for_pointer_error(exc, claim, path, claim_index))
                continue

            self.entries_applied += 1
            logger.debug(
                "Applied {path} -> {target} from claim {claim_id}",
                path=path,
                target=target,
                claim_id=claim.id,
            )
        return issues

    def get_stats(self) -> dict:
        return {
            "entries_applied": self.entries_applied,
            "entries_skipped": self.entries_skipped,
        }
