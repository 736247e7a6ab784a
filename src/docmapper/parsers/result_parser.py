"""Schema-driven result parser.

This module turns a raw model completion into one PropertyMapping per
schema property. The model is asked to emit a document matching the
schema verbatim; the older ``{"mappings": [...]}`` list shape is still
understood. Parsing never raises: malformed output yields zero-confidence
mappings for every property.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..models import PropertyMapping, Schema

__all__ = ["ParseResult", "ResultParser", "calculate_overall_confidence", "coerce_confidence"]

logger = logging.getLogger(__name__)

FOUND_CONFIDENCE = 85
FOUND_SOURCE = "Extracted from document"
MISSING_SOURCE = "Not found"
FALLBACK_SOURCE = "Not found in document"

_JSON_FENCE = re.compile(r"^```json\s*")
_PLAIN_FENCE = re.compile(r"^```\s*")
_CLOSING_FENCE = re.compile(r"```\s*$")
_OBJECT_SPAN = re.compile(r"\{.*\}", re.S)


@dataclass
class ParseResult:
    """Parsed mappings plus the decoded document, if any."""
    mappings: List[PropertyMapping]
    parsed_document: Optional[Dict[str, Any]] = None

    @property
    def confidence(self) -> int:
        return calculate_overall_confidence(self.mappings)


def calculate_overall_confidence(mappings: List[PropertyMapping]) -> int:
    """Return the rounded mean confidence, 0 for no mappings."""
    if not mappings:
        return 0
    total = sum(m.confidence for m in mappings)
    # round() ties to even: (85 + 0) / 2 -> 42
    return round(total / len(mappings))


def coerce_confidence(value: Any) -> int:
    """Return a confidence as an int in [0, 100], 0 when not numeric."""
    if isinstance(value, bool):
        return 0
    try:
        number = round(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(0, min(100, number))


class ResultParser:
    """Parses model completions against a target schema."""

    def parse(self, raw_text: str, schema: Schema) -> ParseResult:
        """Parse a model completion.

        Args:
            raw_text: Raw completion text
            schema: Schema the completion should instantiate

        Returns:
            ParseResult with mappings and, for schema-shaped output, the
            decoded document
        """
        decoded = self._decode(raw_text)
        if decoded is None:
            return ParseResult(mappings=self._fallback(schema))

        legacy = decoded.get("mappings")
        if isinstance(legacy, list):
            return ParseResult(mappings=self._from_legacy(legacy))

        mappings: List[PropertyMapping] = []
        for prop in schema.properties:
            value = decoded.get(prop.name)
            found = value is not None
            mappings.append(PropertyMapping(
                property_name=prop.name,
                extracted_value=value,
                confidence=FOUND_CONFIDENCE if found else 0,
                source=FOUND_SOURCE if found else MISSING_SOURCE,
            ))

        logger.debug(
            "Parsed complete document with %d non-null values",
            sum(1 for m in mappings if m.extracted_value is not None)
        )
        return ParseResult(mappings=mappings, parsed_document=decoded)

    @staticmethod
    def strip_code_fences(raw_text: str) -> str:
        """Remove surrounding markdown code fences."""
        text = raw_text.strip()
        if text.startswith("```json"):
            text = _CLOSING_FENCE.sub("", _JSON_FENCE.sub("", text))
        elif text.startswith("```"):
            text = _CLOSING_FENCE.sub("", _PLAIN_FENCE.sub("", text))
        return text

    def _decode(self, raw_text: str) -> Optional[Dict[str, Any]]:
        """Decode the first brace-delimited span as a JSON object."""
        match = _OBJECT_SPAN.search(self.strip_code_fences(raw_text or ""))
        if not match:
            logger.warning("Model output contains no JSON object")
            return None

        try:
            decoded = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            logger.error("Failed to parse mapping JSON: %s", e)
            return None

        if not isinstance(decoded, dict):
            return None
        return decoded

    @staticmethod
    def _from_legacy(entries: List[Any]) -> List[PropertyMapping]:
        mappings: List[PropertyMapping] = []
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            mappings.append(PropertyMapping(
                property_name=str(entry.get("property") or ""),
                extracted_value=entry.get("value"),
                confidence=coerce_confidence(entry.get("confidence")),
                source=str(entry.get("source") or ""),
            ))
        return mappings

    @staticmethod
    def _fallback(schema: Schema) -> List[PropertyMapping]:
        return [
            PropertyMapping(
                property_name=prop.name,
                extracted_value=None,
                confidence=0,
                source=FALLBACK_SOURCE,
            )
            for prop in schema.properties
        ]
