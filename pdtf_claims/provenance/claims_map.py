"""
Claims Map: a document-shaped provenance index.

Every leaf path a claim wrote to accumulates that claim, in application
order. Alongside the history, each node tracks the live shape of the
aggregated document (node kind, array length, whether the node currently
exists). Append indices and container checks are resolved against that
shape with the same rules the Document Mutator applies to the state, so
the concrete paths in the map always line up with the concrete paths in
the aggregated document, even after an array was replaced by a shorter one.
"""

from enum import Enum
from typing import Any, Callable, Iterator, Mapping, Optional, Sequence

from loguru import logger

from pdtf_claims.core import pointer
from pdtf_claims.core.models import Claim, ClaimIssue
from pdtf_claims.core.pointer import ContainerMismatchError, MalformedPathError
from pdtf_claims.state.aggregator import ClaimLike, order_claims
from pdtf_claims.state.mutator import issue_for_pointer_error


class NodeKind(str, Enum):
    OBJECT = "object"
    ARRAY = "array"
    SCALAR = "scalar"


def _kind_of(value: Any) -> NodeKind:
    if isinstance(value, dict):
        return NodeKind.OBJECT
    if isinstance(value, list):
        return NodeKind.ARRAY
    return NodeKind.SCALAR


class ProvenanceNode:
    """One path of the map: live shape plus the claims recorded there"""

    __slots__ = ("kind", "length", "present", "children", "claims")

    def __init__(self) -> None:
        self.kind = NodeKind.SCALAR
        self.length = 0
        self.present = False
        self.children: dict[str, "ProvenanceNode"] = {}
        self.claims: list[Claim] = []

    def live_child(self, segment: str) -> Optional["ProvenanceNode"]:
        child = self.children.get(segment)
        if child is not None and child.present:
            return child
        return None

    def child(self, segment: str) -> "ProvenanceNode":
        node = self.children.get(segment)
        if node is None:
            node = self.children[segment] = ProvenanceNode()
        return node

    def retire(self) -> None:
        """Drop the live shape below this node, keeping its history"""
        for node in self.children.values():
            if node.present:
                node.present = False
                node.retire()

    def reshape(self, kind: NodeKind, length: int = 0) -> None:
        self.retire()
        self.present = True
        self.kind = kind
        self.length = length

    def has_live_children(self) -> bool:
        if self.kind is NodeKind.ARRAY:
            return self.length > 0
        return self.kind is NodeKind.OBJECT and any(
            node.present for node in self.children.values()
        )


def _step(node: ProvenanceNode, segment: str, path: str) -> Optional[ProvenanceNode]:
    """Live child of `node`, None when it may be created; mirrors the mutator"""
    if node.kind is NodeKind.OBJECT:
        return node.live_child(segment)
    if node.kind is NodeKind.ARRAY:
        if not pointer.is_index(segment):
            raise ContainerMismatchError(
                f"Segment {segment!r} of {path!r} is not an index into an array"
            )
        index = int(segment)
        if index < node.length:
            return node.live_child(segment)
        if index == node.length:
            return None
        raise ContainerMismatchError(
            f"Index {index} of {path!r} is past the end of an array of length {node.length}"
        )
    raise ContainerMismatchError(
        f"Segment {segment!r} of {path!r} walks into a scalar value"
    )


def _attach(parent: ProvenanceNode, segment: str) -> ProvenanceNode:
    node = parent.child(segment)
    if parent.kind is NodeKind.ARRAY and int(segment) == parent.length:
        parent.length += 1
    return node


class ClaimsMap:
    """
    Provenance index with the same shape as the aggregated document.

    Build it with `build_claims_map`; query it with `lookup`.
    """

    def __init__(self, initial_state: Optional[Mapping[str, Any]] = None) -> None:
        self.root = ProvenanceNode()
        self.root.reshape(NodeKind.OBJECT)
        self.positions: dict[int, int] = {}
        if initial_state:
            for key, value in initial_state.items():
                self._shape_only(self.root.child(str(key)), value)

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def _shape_only(self, node: ProvenanceNode, value: Any) -> None:
        # Seed values exist in the document but were written by no claim
        kind = _kind_of(value)
        node.reshape(kind, len(value) if kind is NodeKind.ARRAY else 0)
        if kind is NodeKind.OBJECT:
            for key, child in value.items():
                self._shape_only(node.child(str(key)), child)
        elif kind is NodeKind.ARRAY:
            for index, child in enumerate(value):
                self._shape_only(node.child(str(index)), child)

    def _graft(self, node: ProvenanceNode, value: Any, claim: Claim) -> None:
        kind = _kind_of(value)
        node.reshape(kind, len(value) if kind is NodeKind.ARRAY else 0)
        if kind is NodeKind.OBJECT and value:
            for key, child in value.items():
                self._graft(node.child(str(key)), child, claim)
        elif kind is NodeKind.ARRAY and value:
            for index, child in enumerate(value):
                self._graft(node.child(str(index)), child, claim)
        else:
            node.claims.append(claim)

    def append_index(self, parent_path: str) -> int:
        """Next free index of the live array at `parent_path` (0 when absent)"""
        node = self.root
        for segment in pointer.segments(parent_path):
            if node.kind is NodeKind.SCALAR:
                return 0
            node = node.live_child(segment)
            if node is None:
                return 0
        if node.kind is not NodeKind.ARRAY:
            raise ContainerMismatchError(
                f"Cannot append to {parent_path or '/'}: existing value is "
                f"{node.kind.value}, not an array"
            )
        return node.length

    def concrete_path(self, path: str) -> str:
        if pointer.is_append_path(path):
            index = self.append_index(pointer.parent_of_append(path))
            return pointer.rewrite_append_path(path, index)
        return path

    def record(self, claim: Claim, path: str, value: Any) -> str:
        """
        Record `claim` at every leaf `value` creates under `path`.

        Returns:
            The concrete path the entry was recorded at

        Raises:
            MalformedPathError, ContainerMismatchError: exactly when the
            Document Mutator would refuse the same write
        """
        target = self.concrete_path(path)
        parts = pointer.segments(target)
        pointer.validate_write_segments(parts, target)
        self.positions.setdefault(id(claim), len(self.positions))

        node = self.root
        position = 0
        last = len(parts) - 1
        while position < last:
            child = _step(node, parts[position], target)
            if child is None:
                break
            node = child
            position += 1

        if position == last:
            _step(node, parts[last], target)
            self._graft(_attach(node, parts[last]), value, claim)
            return target

        fresh = parts[position + 1:]
        for segment in fresh:
            if pointer.is_index(segment) and segment != "0":
                raise ContainerMismatchError(
                    f"Index {segment} of {target!r} is past the end of a new empty array"
                )
        node = _attach(node, parts[position])
        for segment in fresh:
            node.reshape(NodeKind.ARRAY if pointer.is_index(segment) else NodeKind.OBJECT)
            node = _attach(node, segment)
        self._graft(node, value, claim)
        return target

    def add_claim(self, claim: Claim) -> list[ClaimIssue]:
        """Record every entry of `claim`, reporting entries that were skipped"""
        issues = []
        for path, value in claim.claims.items():
            try:
                self.record(claim, path, value)
            except (MalformedPathError, ContainerMismatchError) as exc:
                logger.debug(
                    "Provenance skipped {path} of claim {claim_id}: {error}",
                    path=path,
                    claim_id=claim.id,
                    error=str(exc),
                )
                issues.append(issue_for_pointer_error(exc, claim, path))
        return issues

    # ------------------------------------------------------------------
    # Querying
    # ------------------------------------------------------------------

    def _find(self, path: str) -> Optional[ProvenanceNode]:
        try:
            parts = pointer.segments(path)
        except MalformedPathError:
            return None
        node = self.root
        for segment in parts:
            node = node.children.get(segment)
            if node is None:
                return None
        return node

    def lookup(self, path: str) -> list[Claim]:
        """
        Claims recorded at exactly `path`, in application order.

        Absent or malformed paths return an empty list; this never raises.
        """
        node = self._find(path)
        if node is None:
            return []
        return list(node.claims)

    def position(self, claim: Claim) -> int:
        """Order in which `claim` was first recorded; unrecorded claims sort last"""
        return self.positions.get(id(claim), len(self.positions))

    def contains(self, path: str) -> bool:
        node = self._find(path)
        return node is not None and bool(node.claims)

    def leaf_paths(self) -> Iterator[str]:
        """Every path with recorded claims that still exists in the document"""
        yield from self._walk_live(self.root, "")

    def _walk_live(self, node: ProvenanceNode, path: str) -> Iterator[str]:
        if node.has_live_children():
            for segment, child in node.children.items():
                if child.present:
                    yield from self._walk_live(child, pointer.join(path, [segment]))
        elif node.claims:
            yield path

    def to_dict(self, serialize: Callable[[Claim], Any] = lambda claim: claim.id) -> Any:
        """
        Export the live shape as plain JSON-compatible data.

        Containers become dicts/lists, leaves become lists of serialized
        claims (claim ids by default).
        """
        if not self.root.has_live_children():
            return {}
        return self._export(self.root, serialize)

    def _export(self, node: ProvenanceNode, serialize: Callable[[Claim], Any]) -> Any:
        if node.kind is NodeKind.ARRAY and node.length:
            return [
                self._export(node.children[str(index)], serialize)
                for index in range(node.length)
            ]
        if node.has_live_children():
            return {
                segment: self._export(child, serialize)
                for segment, child in node.children.items()
                if child.present
            }
        return [serialize(claim) for claim in node.claims]


def build_claims_map(
    claims: Sequence[ClaimLike],
    initial_state: Optional[Mapping[str, Any]] = None,
) -> tuple[ClaimsMap, list[ClaimIssue]]:
    """
    Build the provenance index for a claim collection.

    Claims are recorded in the same verification-time order the State
    Aggregator applies them, starting from the same seed document, so
    append paths resolve to the same concrete indices.

    Raises:
        TypeError: if `claims` is not a sequence
    """
    ordered, issues = order_claims(claims)
    claims_map = ClaimsMap(initial_state)
    for claim in ordered:
        issues.extend(claims_map.add_claim(claim))

    logger.info("Built claims map from {count} claims", count=len(ordered))
    return claims_map, issues
