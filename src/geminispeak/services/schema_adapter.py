"""
Tool parameter schema normalization for Gemini.

Gemini function declarations accept an OpenAPI-flavoured subset of JSON
Schema. This module downgrades the keywords it rejects:
- Union types collapse to a single type (null dropped, otherwise string)
- Composition keywords (anyOf, oneOf, allOf, not) are removed
- Tuple-typed ``items`` keeps only the first schema
Every downgrade is recorded as a note.
"""

import logging
from typing import Any, Dict, List, Tuple

logger = logging.getLogger(__name__)

_KEPT_KEYWORDS = (
    "title",
    "description",
    "default",
    "enum",
    "const",
    "minimum",
    "maximum",
    "minLength",
    "maxLength",
    "minItems",
    "maxItems",
    "nullable",
)

_REJECTED_KEYWORDS = (
    "additionalProperties",
    "anyOf",
    "oneOf",
    "allOf",
    "not",
    "patternProperties",
    "if",
    "then",
    "else",
    "pattern",
    "format",
    "dependencies",
    "$schema",
    "$ref",
    "$defs",
    "definitions",
)


class SchemaAdapter:
    """Normalizes tool parameter schemas and logs what was downgraded."""

    def normalize_parameters(self, schema: Dict[str, Any], tool_name: str = "") -> Dict[str, Any]:
        normalized, notes = self.normalize_google_schema(schema)
        if notes:
            logger.warning(
                f"Normalized parameters of tool {tool_name!r} for Gemini; "
                f"downgrades: {'; '.join(notes)}"
            )
        return normalized

    @staticmethod
    def normalize_google_schema(schema: Dict[str, Any]) -> Tuple[Dict[str, Any], List[str]]:
        """
        Normalize a JSON Schema for Gemini function declarations.

        Args:
            schema: Original JSON Schema

        Returns:
            Tuple of (normalized_schema, list_of_notes)
        """
        notes: List[str] = []

        def where(path: str) -> str:
            return path or "<root>"

        def collapse_type(node_type: List[Any], path: str) -> str:
            remaining = [t for t in node_type if t != "null"]
            if len(remaining) == 1:
                notes.append(f"{where(path)}: removed 'null' from union type {node_type}")
                return remaining[0]
            if remaining:
                notes.append(f"{where(path)}: multi-type union {node_type} normalized to 'string'")
            else:
                notes.append(f"{where(path)}: union type {node_type} normalized to 'string'")
            return "string"

        def normalize(node: Any, path: str) -> Any:
            if not isinstance(node, dict):
                return node

            result: Dict[str, Any] = {}
            node_type = node.get("type")
            if isinstance(node_type, list):
                result["type"] = collapse_type(node_type, path)
            elif isinstance(node_type, str):
                result["type"] = node_type

            for key in _KEPT_KEYWORDS:
                if key in node:
                    result[key] = node[key]

            rejected = [key for key in _REJECTED_KEYWORDS if key in node]
            if rejected:
                notes.append(f"{where(path)}: removed unsupported keywords {rejected}")

            effective_type = result.get("type")
            if effective_type == "object" or (effective_type is None and "properties" in node):
                properties = node.get("properties")
                if isinstance(properties, dict):
                    prefix = f"{path}." if path else ""
                    result["properties"] = {
                        name: normalize(sub, f"{prefix}properties.{name}")
                        for name, sub in properties.items()
                    }
                if isinstance(node.get("required"), list):
                    result["required"] = [str(name) for name in node["required"]]

            if effective_type == "array":
                items = node.get("items")
                if isinstance(items, list) and items:
                    result["items"] = normalize(items[0], f"{where(path)}.items[0]")
                    notes.append(f"{where(path)}: tuple-typed 'items' normalized to first schema")
                elif isinstance(items, dict):
                    result["items"] = normalize(items, f"{where(path)}.items")

            return result

        return normalize(schema, ""), notes


def normalize_google_schema(schema: Dict[str, Any]) -> Tuple[Dict[str, Any], List[str]]:
    """Module-level shortcut for :meth:`SchemaAdapter.normalize_google_schema`."""
    return SchemaAdapter.normalize_google_schema(schema)
