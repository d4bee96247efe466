"""
Schema conformance checks against the PDTF transaction JSON Schema.

The schema itself is an external artefact; this adapter only answers
whether a claim path is addressable in it and whether a value conforms to
the schema fragment at that path. Results are advisory.
"""

import json
from pathlib import Path
from typing import Any, Optional, Union

from jsonschema import Draft7Validator
from jsonschema.validators import validator_for
from loguru import logger

from pdtf_claims.core import pointer
from pdtf_claims.core.pointer import MalformedPathError

SchemaNode = Union[dict, bool]

_COMPOSITIONS = ("allOf", "anyOf", "oneOf")
_SHARED_KEYS = ("definitions", "$defs")
_MAX_REF_HOPS = 32


def _format_error(error: Any) -> str:
    location = "/".join(str(part) for part in error.absolute_path)
    return f"{'/' + location if location else '<value>'}: {error.message}"


class SchemaConformanceChecker:
    """
    Answers path legality and value conformance questions for one schema.

    Only local `$ref`s (`#/...`) are followed when walking paths; the
    validator class is picked from the schema's `$schema` keyword.
    """

    def __init__(self, schema: dict[str, Any]) -> None:
        self.schema = schema
        self.validator_class = validator_for(schema, default=Draft7Validator)
        self.validator_class.check_schema(schema)
        self._document_validator = self.validator_class(schema)
        self.checks_run = 0
        logger.info(
            "SchemaConformanceChecker initialized ({validator})",
            validator=self.validator_class.__name__,
        )

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "SchemaConformanceChecker":
        """Load a JSON Schema document from disk"""
        schema = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls(schema)

    # ------------------------------------------------------------------
    # Path resolution
    # ------------------------------------------------------------------

    def _resolve(self, node: Any) -> Optional[SchemaNode]:
        for _ in range(_MAX_REF_HOPS):
            if isinstance(node, bool):
                return node
            if not isinstance(node, dict):
                return None
            ref = node.get("$ref")
            if not isinstance(ref, str):
                return node
            if not ref.startswith("#"):
                logger.debug("Not following non-local $ref {ref}", ref=ref)
                return None
            try:
                found = pointer.lookup(self.schema, ref[1:])
            except MalformedPathError:
                return None
            if not found.found:
                return None
            node = found.value
        return None

    def _child(self, node: Any, segment: str) -> Optional[SchemaNode]:
        node = self._resolve(node)
        if node is None or isinstance(node, bool):
            return node if node is True else None

        properties = node.get("properties") or {}
        if segment in properties:
            return self._resolve(properties[segment])

        items = node.get("items")
        if (pointer.is_index(segment) or segment == pointer.APPEND_TOKEN) and isinstance(items, dict):
            return self._resolve(items)

        for keyword in _COMPOSITIONS:
            for branch in node.get(keyword) or []:
                found = self._child(branch, segment)
                if found is not None:
                    return found

        additional = node.get("additionalProperties")
        if isinstance(additional, dict):
            return self._resolve(additional)
        return None

    def schema_for_path(self, path: str) -> Optional[SchemaNode]:
        """Schema fragment a claim path points at, or None when unresolvable"""
        try:
            parts = pointer.segments(path)
        except MalformedPathError:
            return None
        node = self._resolve(self.schema)
        for segment in parts:
            node = self._child(node, segment)
            if node is None:
                return None
        return node

    def is_path_valid(self, path: str) -> bool:
        return self.schema_for_path(path) is not None

    # ------------------------------------------------------------------
    # Value checks
    # ------------------------------------------------------------------

    def _standalone(self, fragment: SchemaNode) -> SchemaNode:
        # Carry the root definitions along so local $refs still resolve
        if isinstance(fragment, bool):
            return fragment
        standalone = dict(fragment)
        for key in _SHARED_KEYS:
            if key in self.schema and key not in standalone:
                standalone[key] = self.schema[key]
        if "$schema" in self.schema:
            standalone.setdefault("$schema", self.schema["$schema"])
        return standalone

    def check_value(self, path: str, value: Any) -> list[str]:
        """
        Error messages for `value` against the fragment at `path`.

        An empty list means the value conforms.
        """
        self.checks_run += 1
        fragment = self.schema_for_path(path)
        if fragment is None:
            return [f"Path '{path}' is not valid according to the schema"]
        validator = self.validator_class(self._standalone(fragment))
        errors = sorted(
            validator.iter_errors(value),
            key=lambda error: [str(part) for part in error.absolute_path],
        )
        return [_format_error(error) for error in errors]

    def check_document(self, document: Any) -> list[str]:
        """Error messages for a whole aggregated transaction document"""
        self.checks_run += 1
        errors = sorted(
            self._document_validator.iter_errors(document),
            key=lambda error: [str(part) for part in error.absolute_path],
        )
        return [_format_error(error) for error in errors]
