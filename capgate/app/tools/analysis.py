"""Aggregate statistics over the structures of one or more spaces."""

from dataclasses import dataclass, field
from typing import Dict, List, Literal, Sequence

from capgate.app.client.models import SpaceInfo

AnalysisType = Literal["overview", "tags", "types", "activity"]
TimeRange = Literal["week", "month", "quarter", "year"]

# Analyses that need data the API does not expose yet
UNAVAILABLE_ANALYSES: Dict[str, str] = {
    "tags": "Tag analysis requires additional API endpoints not yet available",
    "activity": "Activity analysis requires temporal data not yet available in API",
}


@dataclass
class ObjectTypeStats:
    count: int = 0
    collections: int = 0
    properties: List[str] = field(default_factory=list)


def count_structures(infos: Sequence[SpaceInfo]) -> Dict[str, int]:
    """Number of spaces defining each structure title."""
    breakdown: Dict[str, int] = {}
    for info in infos:
        for structure in info.structures:
            breakdown[structure.title] = breakdown.get(structure.title, 0) + 1
    return breakdown


def collect_object_types(infos: Sequence[SpaceInfo]) -> Dict[str, ObjectTypeStats]:
    """Per structure title: occurrences, collection count and distinct property names."""
    types: Dict[str, ObjectTypeStats] = {}
    for info in infos:
        for structure in info.structures:
            stats = types.setdefault(structure.title, ObjectTypeStats())
            stats.count += 1
            stats.collections += len(structure.collections)
            for prop in structure.property_definitions:
                if prop.name not in stats.properties:
                    stats.properties.append(prop.name)
    return types


def format_analysis(
    analysis_type: AnalysisType, space_count: int, infos: Sequence[SpaceInfo]
) -> str:
    lines = [f"Content Analysis Report - {analysis_type.upper()}", ""]

    if analysis_type == "overview":
        lines.append(f"**Total Spaces:** {space_count}")
        lines.append(f"**Total Object Types:** {sum(len(i.structures) for i in infos)}")
        lines.append("")
        lines.append("**Structure Distribution:**")
        for name, count in count_structures(infos).items():
            lines.append(f"- {name}: {count}")
    elif analysis_type == "types":
        lines.append("**Object Type Details:**")
        for name, stats in collect_object_types(infos).items():
            lines.append("")
            lines.append(f"**{name}**")
            lines.append(f"- Instances: {stats.count}")
            lines.append(f"- Collections: {stats.collections}")
            lines.append(f"- Properties: {', '.join(stats.properties)}")
    else:
        lines.append(UNAVAILABLE_ANALYSES[analysis_type])

    return "\n".join(lines)
