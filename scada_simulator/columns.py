"""Split a logger table's columns into system, measure and quality columns."""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from .errors import SchemaError

logger = logging.getLogger(__name__)

ID_COLUMN = "ID"
TIMESTAMP_COLUMN = "UTCTimestamp_Ticks"
LOG_TYPE_COLUMN = "LogType"
SYNC_FLAG_COLUMN = "NotSync"

SYSTEM_COLUMNS = (ID_COLUMN, TIMESTAMP_COLUMN, LOG_TYPE_COLUMN, SYNC_FLAG_COLUMN)
_SYSTEM_LOWER = {c.lower() for c in SYSTEM_COLUMNS}


def quality_column_name(measure: str) -> str:
    """Quality column paired with ``measure``: ``_<measure>_Q``."""
    return f"_{measure}_Q"


@dataclass(frozen=True)
class ColumnLayout:
    """Column roles of one table, computed once per run."""

    timestamp: str
    log_type: str
    sync_flag: str
    measures: List[str]
    quality: Dict[str, str] = field(default_factory=dict)

    @property
    def quality_columns(self) -> List[str]:
        return [self.quality[m] for m in self.measures]


def _find(columns_by_lower: Dict[str, str], name: str, table: str) -> str:
    actual = columns_by_lower.get(name.lower())
    if actual is None:
        raise SchemaError(f"Table '{table}' has no {name} column.")
    return actual


def classify_columns(columns: Sequence[str], table: str = "") -> ColumnLayout:
    """Classify ``columns`` and pair every measure with its quality column.

    System column names are matched case-insensitively and returned in the
    catalog's spelling. Raises SchemaError when a system column is absent, when
    no measure column exists, or when a measure has no ``_<measure>_Q`` column.
    """
    if not columns:
        raise SchemaError(f"Table '{table}' not found or has no columns.")

    by_lower = {c.lower(): c for c in columns}
    timestamp = _find(by_lower, TIMESTAMP_COLUMN, table)
    log_type = _find(by_lower, LOG_TYPE_COLUMN, table)
    sync_flag = _find(by_lower, SYNC_FLAG_COLUMN, table)

    measures = [c for c in columns if c.lower() not in _SYSTEM_LOWER and not c.startswith("_")]
    if not measures:
        raise SchemaError(f"No measure columns detected in table '{table}'.")

    quality: Dict[str, str] = {}
    missing = []
    for m in measures:
        actual = by_lower.get(quality_column_name(m).lower())
        if actual is None:
            missing.append(quality_column_name(m))
        else:
            quality[m] = actual
    if missing:
        raise SchemaError(f"Table '{table}' is missing quality columns: {', '.join(missing)}")

    paired = {q.lower() for q in quality.values()}
    orphans = [c for c in columns if c.startswith("_") and c.lower() not in paired]
    if orphans:
        logger.warning(f"Columns not paired with any measure will be left empty: {', '.join(orphans)}")

    return ColumnLayout(
        timestamp=timestamp,
        log_type=log_type,
        sync_flag=sync_flag,
        measures=measures,
        quality=quality,
    )
