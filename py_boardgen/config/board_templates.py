"""
Board template catalog.

Five ring/bridge layouts authored on a 40x40 design canvas. Each template
carries the quotas the rule-based placer uses along its outer ring.
"""

from typing import Dict, List, Union

from ..core.lcg_prng import LcgPRNG
from ..core.template_builder import (
    BoardTemplate,
    BridgeSpec,
    LargeParcelQuota,
    RingKind,
    RingSpec,
    SmallParcelQuota,
)


class TemplateNotFoundError(LookupError):
    """Raised when a template id (or name) is not in the catalog."""

    def __init__(self, template_id: Union[str, int]):
        self.template_id = template_id
        super().__init__(
            f"Unknown template '{template_id}'. Available: {', '.join(TEMPLATES)}"
        )


DOUBLE_RING_2_BRIDGES = BoardTemplate(
    id="double_ring_2_bridges",
    name="DoubleRing+2Bridges",
    description="Square outer ring around a square inner ring, two bridges",
    rings=(
        RingSpec(RingKind.OUTER, ((3, 3), (36, 3), (36, 36), (3, 36)), jitter=(0, 1)),
        RingSpec(RingKind.INNER, ((13, 13), (26, 13), (26, 26), (13, 26)), jitter=(0, 1)),
    ),
    bridges=(
        BridgeSpec("outer@1", "inner@1"),
        BridgeSpec("outer@3", "inner@3"),
    ),
    small_parcels=SmallParcelQuota(ratio=(0.35, 0.5), stride=(2, 3)),
    large_parcels=LargeParcelQuota(count=(2, 4), min_straight=6, min_spacing=6),
)

SINGLE_RING = BoardTemplate(
    id="single_ring",
    name="SingleRing",
    description="One jittered loop around the board",
    rings=(
        RingSpec(RingKind.OUTER, ((4, 4), (35, 4), (35, 35), (4, 35)), jitter=(0, 2)),
    ),
    small_parcels=SmallParcelQuota(ratio=(0.3, 0.45), stride=(2, 3)),
    large_parcels=LargeParcelQuota(count=(3, 5), min_straight=5, min_spacing=5),
)

LARGE_OUTER_SMALL_INNER_3_BRIDGES = BoardTemplate(
    id="large_outer_small_inner_3_bridges",
    name="LargeOuter+SmallInner+3Bridges",
    description="Wide outer ring, compact inner ring, three bridges",
    rings=(
        RingSpec(RingKind.OUTER, ((2, 2), (37, 2), (37, 37), (2, 37)), jitter=(0, 1)),
        RingSpec(RingKind.INNER, ((15, 15), (24, 15), (24, 24), (15, 24)), jitter=(0, 1)),
    ),
    bridges=(
        BridgeSpec("outer@1", "inner@1"),
        BridgeSpec("outer@2", "inner@2"),
        BridgeSpec("outer@4", "inner@4"),
    ),
    small_parcels=SmallParcelQuota(ratio=(0.3, 0.45), stride=(2, 3)),
    large_parcels=LargeParcelQuota(count=(3, 5), min_straight=6, min_spacing=6),
)

IRREGULAR_DOUBLE_RING = BoardTemplate(
    id="irregular_double_ring",
    name="IrregularDoubleRing",
    description="Octagonal, strongly jittered outer ring with an inner loop",
    rings=(
        RingSpec(
            RingKind.OUTER,
            ((3, 4), (20, 3), (36, 6), (35, 22), (37, 36), (18, 35), (4, 37), (5, 20)),
            jitter=(1, 2),
        ),
        RingSpec(RingKind.INNER, ((14, 14), (25, 13), (26, 25), (13, 26)), jitter=(0, 1)),
    ),
    bridges=(
        BridgeSpec("outer@2", "inner@2"),
        BridgeSpec("outer@4", "inner@4"),
    ),
    small_parcels=SmallParcelQuota(ratio=(0.25, 0.4), stride=(2, 3)),
    large_parcels=LargeParcelQuota(count=(2, 3), min_straight=5, min_spacing=5),
)

SQUARE_RING = BoardTemplate(
    id="square_ring",
    name="SquareRing",
    description="Classic straight-edged square loop",
    rings=(
        RingSpec(RingKind.OUTER, ((6, 6), (33, 6), (33, 33), (6, 33)), jitter=(0, 0)),
    ),
    small_parcels=SmallParcelQuota(ratio=(0.35, 0.5), stride=(2, 3)),
    large_parcels=LargeParcelQuota(count=(3, 4), min_straight=5, min_spacing=5),
)

TEMPLATES: Dict[str, BoardTemplate] = {
    template.id: template
    for template in (
        DOUBLE_RING_2_BRIDGES,
        SINGLE_RING,
        LARGE_OUTER_SMALL_INNER_3_BRIDGES,
        IRREGULAR_DOUBLE_RING,
        SQUARE_RING,
    )
}

_TEMPLATE_ORDER: List[BoardTemplate] = list(TEMPLATES.values())


def get_template(template_id: str) -> BoardTemplate:
    """
    Get a template by id or display name.

    Args:
        template_id: Catalog id (``single_ring``) or name (``SingleRing``)

    Returns:
        The matching BoardTemplate

    Raises:
        TemplateNotFoundError: If nothing in the catalog matches
    """
    if template_id in TEMPLATES:
        return TEMPLATES[template_id]
    for template in _TEMPLATE_ORDER:
        if template.name == template_id:
            return template
    raise TemplateNotFoundError(template_id)


def get_template_by_index(index: int) -> BoardTemplate:
    """Get a template by catalog position; the index wraps around."""
    return _TEMPLATE_ORDER[index % len(_TEMPLATE_ORDER)]


def select_random_template(prng: LcgPRNG) -> BoardTemplate:
    """Pick a template with one draw from the generation PRNG."""
    return _TEMPLATE_ORDER[int(prng.random() * len(_TEMPLATE_ORDER))]


def list_templates() -> List[Dict[str, object]]:
    """Return summaries of all catalog templates."""
    return [
        {
            "id": template.id,
            "name": template.name,
            "description": template.description,
            "rings": [ring.kind.value for ring in template.rings],
            "bridges": len(template.bridges),
        }
        for template in _TEMPLATE_ORDER
    ]
