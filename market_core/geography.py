"""Geography hierarchy resolution.

Matches the fixed region -> country reference taxonomy against the geography
labels that actually exist in a dataset. Every label ends up either in the
resolved tree or in the flat ``unmatched`` bucket, never both.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Literal, Optional, Sequence, Set, Tuple

from market_core.taxonomy import REGION_HIERARCHY, TaxonomyNode, normalize_label

SelectionState = Literal["all", "partial", "none"]

normalize_geo_name = normalize_label


def find_matching_geo(geo_name: str, all_geographies: Iterable[str]) -> Optional[str]:
    normalized = normalize_geo_name(geo_name)
    for geo in all_geographies:
        if normalize_geo_name(geo) == normalized:
            return geo
    return None


@dataclass(frozen=True)
class GeographyNode:
    name: str
    template_name: str
    children: Tuple["GeographyNode", ...] = ()
    exists_in_data: bool = True
    # False for template placeholders kept only to group matched children.
    selectable: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "existsInData": self.exists_in_data,
            "selectable": self.selectable,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass(frozen=True)
class GeographyResolution:
    tree: Tuple[GeographyNode, ...]
    unmatched: Tuple[str, ...]
    # label -> canonical ancestor names from the top level down, self included
    paths: Dict[str, Tuple[str, ...]] = field(default_factory=dict, compare=False, repr=False)

    def labels(self) -> List[str]:
        """Labels present in the tree, in display order."""
        out: List[str] = []

        def walk(nodes: Sequence[GeographyNode]) -> None:
            for node in nodes:
                if node.selectable:
                    out.append(node.name)
                walk(node.children)

        walk(self.tree)
        return out

    def rollup(self, label: str, level: int) -> str:
        path = self.paths.get(label)
        if not path or level < 1 or len(path) <= level:
            return label
        return path[level - 1]

    def to_dict(self) -> Dict[str, Any]:
        return {"tree": [node.to_dict() for node in self.tree], "unmatched": list(self.unmatched)}


def _index_labels(labels: Sequence[str]) -> Dict[str, List[str]]:
    index: Dict[str, List[str]] = {}
    for label in labels:
        index.setdefault(normalize_geo_name(label), []).append(label)
    return index


def _build_nodes(
    template: Sequence[TaxonomyNode],
    index: Dict[str, List[str]],
    matched: Set[str],
    paths: Dict[str, Tuple[str, ...]],
    parent_path: Tuple[str, ...],
) -> Tuple[GeographyNode, ...]:
    nodes: List[GeographyNode] = []
    for region in template:
        candidates = index.get(normalize_geo_name(region.name), [])
        # A label already claimed by an earlier template node stays with it.
        match = next((label for label in candidates if label not in matched), None)
        if match is not None:
            matched.add(match)
        name = match if match is not None else region.name
        path = parent_path + (name,)

        children = _build_nodes(region.children, index, matched, paths, path)
        if match is None and not children:
            continue
        if match is not None:
            paths[match] = path
        nodes.append(
            GeographyNode(
                name=name,
                template_name=region.name,
                children=children,
                exists_in_data=True,
                selectable=match is not None,
            )
        )
    return tuple(nodes)


def resolve_geography_hierarchy(
    labels: Iterable[str],
    template: Sequence[TaxonomyNode] = REGION_HIERARCHY,
) -> GeographyResolution:
    available = list(dict.fromkeys(str(label) for label in labels))
    if not available:
        return GeographyResolution(tree=(), unmatched=())

    matched: Set[str] = set()
    paths: Dict[str, Tuple[str, ...]] = {}
    tree = _build_nodes(template, _index_labels(available), matched, paths, ())
    unmatched = tuple(label for label in available if label not in matched)
    return GeographyResolution(tree=tree, unmatched=unmatched, paths=paths)


@lru_cache(maxsize=8)
def _resolve_cached(labels: Tuple[str, ...], template: Tuple[TaxonomyNode, ...]) -> GeographyResolution:
    return resolve_geography_hierarchy(labels, template)


class GeographyHierarchyResolver:
    """Shared entry point for every caller that needs geography grouping.

    Results are memoized per distinct label tuple, so a new dataset (or a new
    set of available labels) rebuilds the tree while repeated calls are free.
    """

    def __init__(self, template: Sequence[TaxonomyNode] = REGION_HIERARCHY):
        self.template = tuple(template)

    def resolve(self, labels: Iterable[str]) -> GeographyResolution:
        return _resolve_cached(tuple(str(label) for label in labels), self.template)


# ---------------- Selector helpers ----------------
def search_resolution(resolution: GeographyResolution, term: str) -> GeographyResolution:
    """Case-insensitive substring search over the tree and the unmatched bucket.

    A region whose own name matches keeps all its children; otherwise only the
    matching children are kept.
    """
    search = (term or "").strip().lower()
    if not search:
        return resolution

    def filter_nodes(nodes: Sequence[GeographyNode]) -> Tuple[GeographyNode, ...]:
        out: List[GeographyNode] = []
        for node in nodes:
            if search in node.name.lower():
                out.append(node)
                continue
            children = filter_nodes(node.children)
            if children:
                out.append(
                    GeographyNode(
                        name=node.name,
                        template_name=node.template_name,
                        children=children,
                        exists_in_data=node.exists_in_data,
                        selectable=node.selectable,
                    )
                )
        return tuple(out)

    return GeographyResolution(
        tree=filter_nodes(resolution.tree),
        unmatched=tuple(geo for geo in resolution.unmatched if search in geo.lower()),
        paths=resolution.paths,
    )


def region_members(node: GeographyNode, available: Iterable[str]) -> List[str]:
    available_set = set(available)
    members: List[str] = []
    if node.name in available_set:
        members.append(node.name)
    members.extend(child.name for child in node.children if child.name in available_set)
    return members


def region_selection_state(node: GeographyNode, selected: Iterable[str], available: Iterable[str]) -> SelectionState:
    members = region_members(node, available)
    chosen = set(selected)
    count = sum(1 for geo in members if geo in chosen)
    if members and count == len(members):
        return "all"
    if count > 0:
        return "partial"
    return "none"


def toggle_region(node: GeographyNode, selected: Sequence[str], available: Iterable[str]) -> Tuple[str, ...]:
    members = region_members(node, available)
    if region_selection_state(node, selected, members) == "all":
        drop = set(members)
        return tuple(geo for geo in selected if geo not in drop)
    chosen = set(selected)
    return tuple(selected) + tuple(geo for geo in members if geo not in chosen)


def toggle_geography(label: str, selected: Sequence[str]) -> Tuple[str, ...]:
    if label in selected:
        return tuple(geo for geo in selected if geo != label)
    return tuple(selected) + (label,)
