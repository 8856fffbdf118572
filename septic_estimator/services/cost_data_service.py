"""Cost Data Service for the septic estimator.

Loads the two static data documents (installation/repair/maintenance costs
and regional adjustments), validates them into typed tables and resolves
the regional multiplier for a state and optional ZIP code.

The documents are read concurrently; the form must not become interactive
until both have loaded, so any failure surfaces as a DataLoadError.
"""

from __future__ import annotations

import asyncio
import json
import time
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import structlog
from pydantic import ValidationError as PydanticValidationError

from septic_estimator.config.errors import DataLoadError
from septic_estimator.config.settings import settings
from septic_estimator.models.cost_tables import (
    CostTables,
    RegionalAdjustment,
    RegionalCostTable,
    SepticCostTable,
)

logger = structlog.get_logger(__name__)


# =============================================================================
# ZIP PREFIX TO STATE
# =============================================================================

# (first 3-digit prefix, last 3-digit prefix, state)
ZIP_PREFIX_RANGES: Tuple[Tuple[int, int, str], ...] = (
    (10, 27, "MA"),
    (28, 29, "RI"),
    (30, 38, "NH"),
    (39, 49, "ME"),
    (50, 59, "VT"),
    (60, 69, "CT"),
    (70, 89, "NJ"),
    (100, 149, "NY"),
    (150, 196, "PA"),
    (197, 199, "DE"),
    (200, 205, "DC"),
    (206, 219, "MD"),
    (220, 246, "VA"),
    (247, 268, "WV"),
    (270, 289, "NC"),
    (290, 299, "SC"),
    (300, 319, "GA"),
    (320, 339, "FL"),
    (341, 349, "FL"),
    (350, 369, "AL"),
    (370, 385, "TN"),
    (386, 397, "MS"),
    (398, 399, "GA"),
    (400, 427, "KY"),
    (430, 458, "OH"),
    (460, 479, "IN"),
    (480, 499, "MI"),
    (500, 528, "IA"),
    (530, 549, "WI"),
    (550, 567, "MN"),
    (570, 577, "SD"),
    (580, 588, "ND"),
    (590, 599, "MT"),
    (600, 629, "IL"),
    (630, 658, "MO"),
    (660, 679, "KS"),
    (680, 693, "NE"),
    (700, 714, "LA"),
    (716, 729, "AR"),
    (730, 749, "OK"),
    (750, 799, "TX"),
    (800, 816, "CO"),
    (820, 831, "WY"),
    (832, 838, "ID"),
    (840, 847, "UT"),
    (850, 865, "AZ"),
    (870, 884, "NM"),
    (889, 898, "NV"),
    (900, 961, "CA"),
    (967, 968, "HI"),
    (970, 979, "OR"),
    (980, 994, "WA"),
    (995, 999, "AK"),
)


def estimate_state_from_zip(zip_code: Optional[str]) -> Optional[str]:
    """Estimate the state from a ZIP code prefix.

    Args:
        zip_code: 5-digit ZIP code.

    Returns:
        2-letter state abbreviation, or None if the prefix is unassigned.
    """
    if not zip_code or len(zip_code) < 3 or not zip_code[:3].isdigit():
        return None

    prefix = int(zip_code[:3])
    for start, end, state in ZIP_PREFIX_RANGES:
        if start <= prefix <= end:
            return state
    return None


# =============================================================================
# DOCUMENT LOADING
# =============================================================================


def _read_json(path: Path) -> Dict[str, Any]:
    """Read one JSON document, converting IO and parse failures."""
    if not path.exists():
        raise DataLoadError(f"Cost data file not found: {path.name}", path=str(path))
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise DataLoadError(
            f"Cost data file {path.name} is not valid JSON: {e.msg} (line {e.lineno})",
            path=str(path),
        ) from e
    except UnicodeDecodeError as e:
        raise DataLoadError(
            f"Cost data file {path.name} is not valid UTF-8: {e.reason}",
            path=str(path),
        ) from e
    except OSError as e:
        raise DataLoadError(f"Could not read cost data file {path.name}: {e}", path=str(path)) from e


def _parse_tables(systems_raw: Dict[str, Any], regional_raw: Dict[str, Any]) -> CostTables:
    """Validate raw documents into typed tables."""
    try:
        systems = SepticCostTable.model_validate(systems_raw)
    except PydanticValidationError as e:
        errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise DataLoadError(
            "Installation cost table failed validation",
            details={"errors": errors[:20]},
        ) from e
    try:
        regional = RegionalCostTable.model_validate(regional_raw)
    except PydanticValidationError as e:
        errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise DataLoadError(
            "Regional cost table failed validation",
            details={"errors": errors[:20]},
        ) from e
    return CostTables(systems=systems, regional=regional)


async def load_cost_tables(
    systems_path: Optional[Path] = None,
    regional_path: Optional[Path] = None,
) -> CostTables:
    """Load and validate both cost documents.

    The two files are read concurrently; if either fails, nothing is
    returned and the caller must keep the form disabled.

    Args:
        systems_path: Installation/repair/maintenance document, defaults to settings.
        regional_path: Regional adjustment document, defaults to settings.

    Returns:
        CostTables with both documents validated.

    Raises:
        DataLoadError: If either file is missing, unreadable or invalid.
    """
    start_time = time.perf_counter()
    systems_path = Path(systems_path or settings.systems_path)
    regional_path = Path(regional_path or settings.regional_path)

    try:
        systems_raw, regional_raw = await asyncio.gather(
            asyncio.to_thread(_read_json, systems_path),
            asyncio.to_thread(_read_json, regional_path),
        )
        tables = _parse_tables(systems_raw, regional_raw)
    except DataLoadError as e:
        logger.error(
            "cost_data_load_failed",
            error=e.message,
            path=e.path,
            details=e.details,
        )
        raise

    logger.info(
        "cost_data_loaded",
        systems_version=tables.systems.version,
        regional_version=tables.regional.version,
        systems=len(tables.systems.systems),
        states=len(tables.regional.states()),
        latency_ms=round((time.perf_counter() - start_time) * 1000, 2),
    )
    return tables


def load_cost_tables_sync(
    systems_path: Optional[Path] = None,
    regional_path: Optional[Path] = None,
) -> CostTables:
    """
    Synchronous wrapper for load_cost_tables.

    For use in contexts where async is not available.
    """
    return asyncio.run(load_cost_tables(systems_path, regional_path))


# =============================================================================
# Cache Management Functions
# =============================================================================

_tables_cache: Optional[CostTables] = None


def get_cost_tables() -> CostTables:
    """Return the process-wide tables, loading them on first use."""
    global _tables_cache
    if _tables_cache is None:
        _tables_cache = load_cost_tables_sync()
    return _tables_cache


def clear_cost_tables_cache() -> None:
    """Clear the cached tables. Useful for testing."""
    global _tables_cache
    _tables_cache = None
    logger.info("cost_data_cache_cleared")


# =============================================================================
# REGIONAL ADJUSTMENT
# =============================================================================


def get_regional_adjustment(
    regional: RegionalCostTable,
    state_code: Optional[str],
    zip_code: Optional[str] = None,
) -> RegionalAdjustment:
    """Resolve the effective regional multiplier.

    The state multiplier is looked up first (unknown states fall back to the
    national default). If the ZIP code falls in one of the state's
    sub-regions, the first matching sub-region multiplier compounds with it.

    Args:
        regional: Loaded regional table.
        state_code: Two-letter state code, or None to derive it from the ZIP.
        zip_code: Optional 5-digit ZIP code.

    Returns:
        RegionalAdjustment with the effective multiplier.
    """
    code = state_code or estimate_state_from_zip(zip_code)
    if code not in regional.regions:
        code = "default"
    state = regional.get(code)

    multiplier = state.multiplier
    sub_region_name = None
    if zip_code:
        for sub in state.sub_regions:
            if sub.contains(zip_code):
                multiplier *= sub.multiplier
                sub_region_name = sub.name
                break

    logger.debug(
        "regional_adjustment_resolved",
        state=code,
        zip_code=zip_code,
        sub_region=sub_region_name,
        multiplier=round(multiplier, 4),
    )
    return RegionalAdjustment(
        state_code=code,
        name=state.name,
        sub_region=sub_region_name,
        multiplier=multiplier,
    )
