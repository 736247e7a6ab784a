"""Target schema definitions.

Schemas are supplied by an external editor and treated as read-only
contracts by the pipeline.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..exceptions import ValidationError

__all__ = ["PropertyType", "SchemaProperty", "Schema"]


class PropertyType(str, Enum):
    """Type tags a schema property may carry."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    ARRAY = "array"
    OBJECT = "object"


@dataclass(frozen=True)
class SchemaProperty:
    """One field of a target schema.

    Attributes:
        name: Property name, matched case-sensitively against model output
        type: Type tag
        required: Whether the property is required
        description: Optional hint included in prompts
        properties: Nested properties for object types
        items: Item definition for array types
    """
    name: str
    type: PropertyType = PropertyType.STRING
    required: bool = False
    description: str = ""
    properties: List["SchemaProperty"] = field(default_factory=list)
    items: Optional["SchemaProperty"] = None

    def to_json_schema(self) -> Dict[str, Any]:
        """Convert this property to a JSON Schema fragment."""
        result: Dict[str, Any] = {"type": self.type.value}
        if self.description:
            result["description"] = self.description
        if self.items is not None:
            result["items"] = self.items.to_json_schema()
        if self.properties:
            result["properties"] = {
                prop.name: prop.to_json_schema() for prop in self.properties
            }
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SchemaProperty":
        """Build a property from its dictionary form.

        Raises:
            ValidationError: If the name is missing or the type tag is unknown
        """
        name = data.get("name")
        if not name:
            raise ValidationError("Schema property is missing a name")
        try:
            prop_type = PropertyType(data.get("type", "string"))
        except ValueError:
            raise ValidationError(f"Unknown type '{data.get('type')}' for property {name}")

        items = data.get("items")
        return cls(
            name=name,
            type=prop_type,
            required=bool(data.get("required", False)),
            description=data.get("description") or "",
            properties=[cls.from_dict(p) for p in data.get("properties") or []],
            items=cls.from_dict(items) if items else None,
        )


@dataclass(frozen=True)
class Schema:
    """User-defined target shape.

    Attributes:
        id: Stable schema identifier
        name: Display name, e.g. "Invoice Schema"
        properties: Ordered top-level properties
    """
    id: str
    name: str
    properties: List[SchemaProperty] = field(default_factory=list)

    @property
    def property_names(self) -> List[str]:
        return [prop.name for prop in self.properties]

    @property
    def document_kind(self) -> str:
        """Name with the editor's decorative suffixes stripped."""
        return (
            self.name.replace(" Schema", "")
            .replace(" (Full)", "")
            .replace(" (Simple)", "")
        )

    def to_json_schema(self) -> Dict[str, Any]:
        """Convert the schema to a JSON Schema object definition."""
        return {
            "type": "object",
            "properties": {
                prop.name: prop.to_json_schema() for prop in self.properties
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Schema":
        """Build a schema from its dictionary form.

        Raises:
            ValidationError: If id or name is missing
        """
        if not data.get("id") or not data.get("name"):
            raise ValidationError("Schema requires an id and a name")
        return cls(
            id=str(data["id"]),
            name=data["name"],
            properties=[SchemaProperty.from_dict(p) for p in data.get("properties") or []],
        )
