"""Transfer deriver: implicit movement steps between producers and consumers."""

from .deriver import (  # noqa: F401
    derive_transfer_steps,
    group_transfers_by_type,
    summarize_transfers,
    total_transfer_complexity,
    total_transfer_time,
    transfer_summary,
    transfers_frame,
)
from .hashing import compute_build_source_hash  # noqa: F401
from .cache import (  # noqa: F401
    DERIVATION_VERSION,
    DerivedCache,
    derive_build_data,
    get_derived_transfers_sync,
)

__all__ = [
    "derive_transfer_steps",
    "group_transfers_by_type",
    "summarize_transfers",
    "total_transfer_complexity",
    "total_transfer_time",
    "transfer_summary",
    "transfers_frame",
    "compute_build_source_hash",
    "DERIVATION_VERSION",
    "DerivedCache",
    "derive_build_data",
    "get_derived_transfers_sync",
]
