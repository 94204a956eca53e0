from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from market_core.taxonomy import SEGMENT_TAXONOMY, TaxonomyNode, normalize_label


def _index_paths(segment_type: str, nodes: Sequence[TaxonomyNode]) -> Dict[str, Tuple[str, ...]]:
    """Map normalized label -> ancestor names, level 1 (the segment type) first."""
    out: Dict[str, Tuple[str, ...]] = {normalize_label(segment_type): (segment_type,)}

    def walk(children: Sequence[TaxonomyNode], parent: Tuple[str, ...]) -> None:
        for node in children:
            path = parent + (node.name,)
            out.setdefault(normalize_label(node.name), path)
            walk(node.children, path)

    walk(nodes, (segment_type,))
    return out


class SegmentRollupResolver:
    """Resolve segment labels to their ancestor at a given aggregation level.

    Level 1 is the segment type total, level 2 the top groups under it, and so
    on down to the leaves. Labels are matched after the same normalization used
    for geographies; anything outside the taxonomy resolves to itself.
    """

    def __init__(self, taxonomy: Mapping[str, Sequence[TaxonomyNode]] = SEGMENT_TAXONOMY):
        self._by_type: Dict[str, Dict[str, Tuple[str, ...]]] = {
            normalize_label(segment_type): _index_paths(segment_type, nodes)
            for segment_type, nodes in taxonomy.items()
        }
        self._global: Dict[str, Tuple[str, ...]] = {}
        for paths in self._by_type.values():
            for key, path in paths.items():
                self._global.setdefault(key, path)

    def _path(self, label: str, segment_type: Optional[str]) -> Optional[Tuple[str, ...]]:
        key = normalize_label(label)
        if segment_type is not None:
            scoped = self._by_type.get(normalize_label(segment_type))
            if scoped is not None and key in scoped:
                return scoped[key]
        return self._global.get(key)

    def rollup(self, label: str, level: int, segment_type: Optional[str] = None) -> str:
        path = self._path(label, segment_type)
        if path is None or level < 1 or len(path) <= level:
            return label
        return path[level - 1]

    def level_of(self, label: str, segment_type: Optional[str] = None) -> Optional[int]:
        path = self._path(label, segment_type)
        return len(path) if path is not None else None

    def children_of(self, label: str, segment_type: Optional[str] = None) -> List[str]:
        path = self._path(label, segment_type)
        if path is None:
            return []
        scoped = self._by_type.get(normalize_label(path[0]), {})
        depth = len(path)
        return [p[-1] for p in scoped.values() if len(p) == depth + 1 and p[:depth] == path]


DEFAULT_SEGMENT_RESOLVER = SegmentRollupResolver()
