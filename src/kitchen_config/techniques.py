"""Controlled technique vocabulary: technique id -> action family and typical tools."""

from __future__ import annotations
from typing import Dict, List, Optional, Tuple

from schema.models import ActionFamily

_F = ActionFamily

# technique id -> (action family, typical tools)
TECHNIQUES: Dict[str, Tuple[ActionFamily, List[str]]] = {
    # PREP
    "cut": (_F.PREP, ["utility_knife"]),
    "drain": (_F.PREP, ["hand"]),
    "open_kit": (_F.PREP, ["hand", "viper"]),
    "open_pack": (_F.PREP, ["hand", "viper"]),
    "open_pouch": (_F.PREP, ["hand", "viper"]),
    "remove_foil": (_F.PREP, ["hand"]),
    "scrape": (_F.PREP, ["bench_scraper", "spatula"]),
    "smash_open": (_F.PREP, ["hand"]),
    "split_bun": (_F.PREP, ["hand", "utility_knife"]),
    "massage": (_F.PREP, ["hand"]),
    "remove_lid": (_F.PREP, ["hand"]),
    "squeeze": (_F.PREP, ["hand"]),
    "crush": (_F.PREP, ["hand"]),
    "make_well": (_F.PREP, ["hand", "spoon"]),
    "peel": (_F.PREP, ["hand", "utility_knife"]),
    "pat_dry": (_F.PREP, ["hand"]),
    "flip": (_F.PREP, ["spatula", "tongs"]),
    # HEAT (technique names, not equipment ids)
    "clamshell_grill": (_F.HEAT, ["spatula", "tongs"]),
    "fry": (_F.HEAT, ["fry_basket", "tongs"]),
    "press": (_F.HEAT, ["hand", "spatula"]),
    "toast": (_F.HEAT, ["hand", "tongs"]),
    "turbo": (_F.HEAT, ["hand", "tongs"]),
    "waterbath": (_F.HEAT, ["tongs", "hand"]),
    "microwave": (_F.HEAT, ["hand"]),
    # TRANSFER
    "pass": (_F.TRANSFER, ["hand"]),
    "place": (_F.TRANSFER, ["hand", "tongs"]),
    "lift_fold": (_F.TRANSFER, ["hand", "spatula"]),
    "pizza_slide": (_F.TRANSFER, ["paddle"]),
    "remove_from_pan": (_F.TRANSFER, ["spatula", "tongs"]),
    # COMBINE
    "fold": (_F.COMBINE, ["spatula", "spoon"]),
    "shake": (_F.COMBINE, ["hand"]),
    "stir": (_F.COMBINE, ["spoon", "spatula"]),
    "toss": (_F.COMBINE, ["tongs", "hand"]),
    "mix": (_F.COMBINE, ["spoon", "whisk"]),
    # ASSEMBLE
    "roll": (_F.ASSEMBLE, ["hand"]),
    "spread": (_F.ASSEMBLE, ["spatula", "spoon"]),
    "sprinkle": (_F.ASSEMBLE, ["hand", "shaker"]),
    "tear_and_place": (_F.ASSEMBLE, ["hand"]),
    "pizza_sprinkle": (_F.ASSEMBLE, ["hand", "shaker"]),
    "shingle": (_F.ASSEMBLE, ["hand", "tongs"]),
    "dots": (_F.ASSEMBLE, ["squeeze_bottle", "spoon"]),
    # PORTION
    "divide": (_F.PORTION, ["hand", "utility_knife"]),
    "drizzle": (_F.PORTION, ["squeeze_bottle", "spoon"]),
    "portion": (_F.PORTION, ["spoodle_2oz", "hand"]),
    "pour": (_F.PORTION, ["ladle", "squeeze_bottle"]),
    "spray": (_F.PORTION, ["squeeze_bottle"]),
    "pinch": (_F.PORTION, ["hand"]),
    "fill": (_F.PORTION, ["ladle", "spoon"]),
    "spiral_pour": (_F.PORTION, ["squeeze_bottle"]),
    "line_pour": (_F.PORTION, ["squeeze_bottle"]),
    "dollops": (_F.PORTION, ["spoon"]),
    "pizza_cut": (_F.PORTION, ["pizza_wheel"]),
    # PACKAGING
    "cover": (_F.PACKAGING, ["hand"]),
    "lid": (_F.PACKAGING, ["hand"]),
    "sleeve": (_F.PACKAGING, ["hand"]),
    "wrap": (_F.PACKAGING, ["hand"]),
    "sticker": (_F.PACKAGING, ["hand"]),
    # OTHER
    "butter_wheel": (_F.OTHER, ["butter_wheel"]),
    "squeege": (_F.OTHER, ["other"]),
    "hot_held": (_F.OTHER, ["hand"]),
}

# alias -> canonical technique id
TECHNIQUE_ALIASES: Dict[str, str] = {
    "open_package": "open_pack",
    "deep_fry": "fry",
    "panini": "press",
    "squeegee": "squeege",
}


def normalize_technique(term: Optional[str]) -> Optional[str]:
    """Canonical technique id for a term (case-insensitive, alias aware), or None if unknown."""
    if not term:
        return None
    lower = term.strip().lower()
    if lower in TECHNIQUES:
        return lower
    return TECHNIQUE_ALIASES.get(lower)


def is_known_technique(technique_id: Optional[str]) -> bool:
    return normalize_technique(technique_id) is not None


def get_technique_action_family(technique_id: Optional[str]) -> Optional[ActionFamily]:
    canonical = normalize_technique(technique_id)
    if canonical is None:
        return None
    return TECHNIQUES[canonical][0]


def is_technique_for_action_family(technique_id: Optional[str], family: str) -> bool:
    fam = get_technique_action_family(technique_id)
    return fam is not None and fam.value == family


def get_techniques_for_action_family(family: str) -> List[str]:
    return [tid for tid, (fam, _tools) in TECHNIQUES.items() if fam.value == family]


def get_typical_tools(technique_id: Optional[str]) -> List[str]:
    canonical = normalize_technique(technique_id)
    if canonical is None:
        return []
    return list(TECHNIQUES[canonical][1])
