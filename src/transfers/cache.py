"""On-disk cache of derived transfer data, keyed by build id.

An entry is reused only while both the build's source hash and the
derivation version match; anything else triggers a pure recompute and an
atomic rewrite. The cache assumes at most one writer per build id.
"""

from __future__ import annotations
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional
import json
import logging
import os
import tempfile

from pydantic import ValidationError

from schema.models import Build
from schema.derived import DerivedBuildData, DerivedTransferStep
from kitchen_config.pods import SiteAssigner
from transfers.deriver import derive_transfer_steps
from transfers.hashing import compute_build_source_hash

logger = logging.getLogger(__name__)

DERIVATION_VERSION = "transfers/v2"


def derive_build_data(
    build: Build, site_assigner: Optional[SiteAssigner] = None
) -> DerivedBuildData:
    return DerivedBuildData(
        build_id=build.id,
        computed_at=datetime.now(timezone.utc),
        derivation_version=DERIVATION_VERSION,
        source_hash=compute_build_source_hash(build),
        transfers=derive_transfer_steps(build, site_assigner),
    )


class DerivedCache:
    def __init__(self, cache_dir: str | Path, site_assigner: Optional[SiteAssigner] = None):
        self.cache_dir = Path(cache_dir)
        self.site_assigner = site_assigner

    def path_for(self, build_id: str) -> Path:
        return self.cache_dir / f"{build_id}.derived.json"

    def read(self, build_id: str) -> Optional[DerivedBuildData]:
        """Cached entry, or None when missing or unreadable. Other OS errors propagate."""
        path = self.path_for(build_id)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        try:
            return DerivedBuildData.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.warning("Ignoring invalid derived cache %s: %s", path, exc)
            return None

    def write(self, data: DerivedBuildData) -> Path:
        """Write atomically: temp file in the same directory, then rename over the target."""
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        target = self.path_for(data.build_id)
        payload = json.dumps(
            data.model_dump(by_alias=True, exclude_none=True, mode="json"),
            indent=2,
            sort_keys=True,
        )
        fd, tmp = tempfile.mkstemp(
            dir=str(self.cache_dir), prefix=f".{data.build_id}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.write("\n")
            os.replace(tmp, target)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
        return target

    def get_transfers(self, build: Build) -> List[DerivedTransferStep]:
        current_hash = compute_build_source_hash(build)
        cached = self.read(build.id)
        if (
            cached is not None
            and cached.source_hash == current_hash
            and cached.derivation_version == DERIVATION_VERSION
        ):
            logger.debug("derived cache hit for %s (%s)", build.id, current_hash)
            return list(cached.transfers)

        logger.debug("derived cache miss for %s (%s)", build.id, current_hash)
        data = derive_build_data(build, self.site_assigner)
        self.write(data)
        return list(data.transfers)


def get_derived_transfers_sync(
    build: Build, site_assigner: Optional[SiteAssigner] = None
) -> List[DerivedTransferStep]:
    """Always recompute; never touches the disk."""
    return derive_transfer_steps(build, site_assigner)
