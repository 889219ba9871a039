"""Request value objects and Capacities wire models.

Upstream payloads use camelCase keys. The pydantic models expose snake_case
attributes, accept either spelling on input, keep unknown fields, and dump
back to the upstream spelling with ``model_dump(by_alias=True)``.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

HttpMethod = Literal["GET", "POST"]

SearchMode = Literal["fullText", "title"]


def success_marker() -> Dict[str, bool]:
    """Synthetic payload for a 2xx response with no usable JSON body."""
    return {"success": True}


def is_success_marker(payload: Any) -> bool:
    return payload == {"success": True}


@dataclass(frozen=True)
class OutboundRequest:
    """One upstream call, built per invocation and never reused."""
    method: HttpMethod
    path: str
    json_body: Optional[Dict[str, Any]] = None
    params: Optional[Dict[str, str]] = None
    headers: Dict[str, str] = field(default_factory=dict)


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class SpaceIcon(WireModel):
    type: str
    val: str
    color: Optional[str] = None
    color_hex: Optional[str] = Field(default=None, alias="colorHex")


class Space(WireModel):
    id: str
    title: str
    icon: Optional[SpaceIcon] = None


class PropertyDefinition(WireModel):
    id: str
    type: str
    data_type: str = Field(alias="dataType")
    name: str


class Collection(WireModel):
    id: str
    title: str


class Structure(WireModel):
    id: str
    title: str
    plural_name: str = Field(default="", alias="pluralName")
    property_definitions: List[PropertyDefinition] = Field(
        default_factory=list, alias="propertyDefinitions"
    )
    label_color: Optional[str] = Field(default=None, alias="labelColor")
    collections: List[Collection] = Field(default_factory=list)


class SpaceInfo(WireModel):
    structures: List[Structure]


class SearchHighlight(WireModel):
    context: Dict[str, Any] = Field(default_factory=dict)
    snippets: List[str] = Field(default_factory=list)
    score: Optional[float] = None


class SearchResult(WireModel):
    id: str
    space_id: str = Field(alias="spaceId")
    structure_id: str = Field(alias="structureId")
    title: str
    highlights: List[SearchHighlight] = Field(default_factory=list)
