"""Static kitchen configuration: stations, techniques, derivation rules, transfer costs, site layout."""

from .stations import (  # noqa: F401
    ALL_EQUIPMENT_IDS,
    ALL_SUBLOCATION_IDS,
    get_station_side,
    get_station_sublocations,
    is_valid_sublocation_for_station,
    is_equipment_available_at_station,
    is_unique_equipment,
    is_shared_equipment,
)
from .techniques import (  # noqa: F401
    normalize_technique,
    is_known_technique,
    get_techniques_for_action_family,
    get_typical_tools,
)
from .transfers import (  # noqa: F401
    determine_transfer_type,
    get_transfer_types_by_complexity,
    TRANSFER_SCORING,
)
from .derivation import STORAGE_SUBLOCATIONS, RETRIEVAL_SUBLOCATIONS  # noqa: F401
from .pods import (  # noqa: F401
    DEFAULT_SITE_LAYOUT,
    SiteLayout,
    load_site_layout,
    make_site_assigner,
)
from .validation import DEFAULT_VALIDATION_CONFIG, ValidationConfig  # noqa: F401

__all__ = [
    "ALL_EQUIPMENT_IDS",
    "ALL_SUBLOCATION_IDS",
    "get_station_side",
    "get_station_sublocations",
    "is_valid_sublocation_for_station",
    "is_equipment_available_at_station",
    "is_unique_equipment",
    "is_shared_equipment",
    "normalize_technique",
    "is_known_technique",
    "get_techniques_for_action_family",
    "get_typical_tools",
    "determine_transfer_type",
    "get_transfer_types_by_complexity",
    "STORAGE_SUBLOCATIONS",
    "RETRIEVAL_SUBLOCATIONS",
    "TRANSFER_SCORING",
    "DEFAULT_SITE_LAYOUT",
    "SiteLayout",
    "load_site_layout",
    "make_site_assigner",
    "DEFAULT_VALIDATION_CONFIG",
    "ValidationConfig",
]
