"""Static reference taxonomies (geography and segment).

Both tables are immutable and loaded once at import time. Labels here are
template names used for matching; the labels actually displayed come from the
dataset.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Tuple

_WHITESPACE = re.compile(r"\s+")


def normalize_label(name: str) -> str:
    """Lower-case, trim, drop periods and collapse whitespace runs."""
    out = str(name).lower().strip().replace(".", "")
    return _WHITESPACE.sub(" ", out)


@dataclass(frozen=True)
class TaxonomyNode:
    name: str
    children: Tuple["TaxonomyNode", ...] = field(default_factory=tuple)


def _node(name: str, *children: str) -> TaxonomyNode:
    return TaxonomyNode(name=name, children=tuple(TaxonomyNode(name=c) for c in children))


REGION_HIERARCHY: Tuple[TaxonomyNode, ...] = (
    _node("North America", "U.S.", "Canada"),
    _node("Europe", "U.K.", "Germany", "Italy", "France", "Spain", "Russia"),
    _node("Rest of Europe"),
    _node("Asia Pacific", "China", "India", "Japan", "South Korea", "ASEAN", "Australia"),
    _node("Rest of Asia Pacific"),
    _node("Latin America", "Brazil", "Argentina", "Mexico"),
    _node("Rest of Latin America"),
    _node("Middle East", "GCC", "Israel"),
    _node("Rest of Middle East"),
    _node("Africa", "North Africa"),
)

# Level 1 is the segment type itself; top-level nodes below are level 2.
SEGMENT_TAXONOMY: Dict[str, Tuple[TaxonomyNode, ...]] = {
    "By Type": (
        _node("Solid Dosage", "Tablets", "Capsules", "Powders", "Granules"),
        _node("Parenteral", "Intravenous", "Intramuscular", "Subcutaneous"),
        _node("Topical", "Creams", "Ointments", "Gels", "Transdermal Patches"),
        _node("Liquid Dosage", "Syrups", "Suspensions", "Solutions"),
        _node("Inhalation", "Metered Dose Inhalers", "Dry Powder Inhalers", "Nebulizers"),
    ),
    "By Route of Administration": (
        _node("Oral", "Immediate Release", "Extended Release"),
        _node("Injectable", "Prefilled Syringes", "Vials", "Autoinjectors"),
        _node("Pulmonary"),
        _node("Dermal"),
    ),
    "By End User": (
        _node("Hospitals", "Public Hospitals", "Private Hospitals"),
        _node("Retail Pharmacies"),
        _node("Online Pharmacies"),
        _node("Homecare Settings"),
    ),
}
