"""
Time-series driver: walks the time grid, builds rows from the waveform
generator and flushes them in transactional batches through a dialect adapter.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from sqlalchemy.engine import Connection

from .columns import ColumnLayout, classify_columns
from .databases import DialectAdapter
from .errors import ValidationError
from .waveform import GeneratorBounds, MeasureState, WaveformGenerator

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MINUTES = 1
DEFAULT_BATCH_SIZE = 1000
LOG_TYPE_VALUE = 1
SYNC_FLAG_VALUE = 0

_TICKS_EPOCH = datetime(1, 1, 1)
_TICKS_PER_MICROSECOND = 10


def to_ticks(moment: datetime) -> int:
    """Convert a naive UTC datetime to .NET ticks (100 ns units since 0001-01-01)."""
    return (moment - _TICKS_EPOCH) // timedelta(microseconds=1) * _TICKS_PER_MICROSECOND


def window_bounds(start_date: date, end_date: date) -> Tuple[datetime, datetime]:
    """Start of ``start_date`` and the last second of ``end_date``."""
    start = datetime.combine(start_date, time.min)
    end_inclusive = datetime.combine(end_date, time.min) + timedelta(days=1) - timedelta(seconds=1)
    return start, end_inclusive


def iter_time_grid(start: datetime, end_inclusive: datetime, interval: timedelta) -> Iterator[datetime]:
    """Yield ``start``, ``start + interval``, ... while the timestamp is <= ``end_inclusive``."""
    if interval <= timedelta(0):
        raise ValidationError("Interval must be > 0.")
    current = start
    while current <= end_inclusive:
        yield current
        current += interval


class RunState(Enum):
    IDLE = "idle"
    DISCOVERING = "discovering"
    CLEANING = "cleaning"
    GENERATING = "generating"
    FLUSHING = "flushing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class SimulationParameters:
    """Run parameters handed over by the CLI/config layer."""

    table: str
    start_date: Optional[date]
    end_date: Optional[date]
    interval_minutes: int = DEFAULT_INTERVAL_MINUTES
    batch_size: int = DEFAULT_BATCH_SIZE
    bounds: GeneratorBounds = field(default_factory=GeneratorBounds)

    def validate(self) -> None:
        if not self.table or not self.table.strip():
            raise ValidationError("Parameter --table (-t) is required.")
        if self.interval_minutes is None or self.interval_minutes <= 0:
            raise ValidationError("Interval (--interval / -i) must be > 0.")
        if self.start_date is None or self.end_date is None:
            raise ValidationError("--startdate and --enddate are required.")
        if self.batch_size is None or self.batch_size <= 0:
            raise ValidationError("Commit batch size must be > 0.")
        self.bounds.validate()

    @property
    def interval(self) -> timedelta:
        return timedelta(minutes=self.interval_minutes)


@dataclass(frozen=True)
class Progress:
    """Reported after every committed batch."""

    rows_inserted: int
    last_timestamp: datetime
    batch_rows: int
    final: bool = False


@dataclass(frozen=True)
class SimulationResult:
    table: str
    rows_inserted: int
    batches: int
    measures: List[str]
    first_timestamp: Optional[datetime] = None
    last_timestamp: Optional[datetime] = None


ProgressCallback = Callable[[Progress], None]


class TimeSeriesSimulator:
    """Runs one simulation over a single open connection.

    States: IDLE -> DISCOVERING -> CLEANING -> GENERATING <-> FLUSHING -> DONE,
    with FAILED reachable from any of them. A failed run is not resumable;
    batches committed before the failure stay in the table.
    """

    def __init__(
        self,
        adapter: DialectAdapter,
        generator: WaveformGenerator,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.adapter = adapter
        self.generator = generator
        self.on_progress = on_progress
        self.state = RunState.IDLE
        self.rows_inserted = 0
        self.batches = 0

    def _transition(self, state: RunState) -> None:
        logger.debug(f"Simulation state {self.state.value} -> {state.value}")
        self.state = state

    def run(self, conn: Connection, params: SimulationParameters) -> SimulationResult:
        """Run one simulation. Counters start from zero on every call."""
        self.state = RunState.IDLE
        self.rows_inserted = 0
        self.batches = 0
        try:
            params.validate()
            return self._run(conn, params)
        except BaseException:
            self._transition(RunState.FAILED)
            raise

    def _run(self, conn: Connection, params: SimulationParameters) -> SimulationResult:
        self._transition(RunState.DISCOVERING)
        schema = self.adapter.discover_table(conn, params.table)
        table = schema.name
        layout = classify_columns(schema.columns, table)
        logger.info(f"Measures: {', '.join(layout.measures)}")
        logger.info(f"Qualities: {', '.join(layout.quality_columns)}")

        self._transition(RunState.CLEANING)
        self.adapter.clean_table(conn, table)

        states = self.generator.initialize_all(layout.measures)
        start, end_inclusive = window_bounds(params.start_date, params.end_date)
        logger.info(
            f"Starting simulation from {start:%Y-%m-%d %H:%M:%S} to {end_inclusive:%Y-%m-%d %H:%M:%S} "
            f"with interval {params.interval_minutes} minutes."
        )

        self._transition(RunState.GENERATING)
        batch: List[Dict[str, Any]] = []
        first_timestamp = None
        last_timestamp = None
        for moment in iter_time_grid(start, end_inclusive, params.interval):
            if first_timestamp is None:
                first_timestamp = moment
            batch.append(self.build_row(layout, states, moment, params.interval_minutes))
            last_timestamp = moment
            if len(batch) >= params.batch_size:
                self._flush(conn, table, batch, moment)
                batch = []
                self._transition(RunState.GENERATING)

        if batch:
            self._flush(conn, table, batch, last_timestamp, final=True)

        self._transition(RunState.DONE)
        logger.info(f"Done. Total inserted: {self.rows_inserted}")
        return SimulationResult(
            table=table,
            rows_inserted=self.rows_inserted,
            batches=self.batches,
            measures=list(layout.measures),
            first_timestamp=first_timestamp,
            last_timestamp=last_timestamp,
        )

    def build_row(
        self,
        layout: ColumnLayout,
        states: Dict[str, MeasureState],
        moment: datetime,
        interval_minutes: int,
    ) -> Dict[str, Any]:
        """One row: system columns, then every measure followed by its quality column."""
        row: Dict[str, Any] = {
            layout.timestamp: to_ticks(moment),
            layout.log_type: LOG_TYPE_VALUE,
            layout.sync_flag: SYNC_FLAG_VALUE,
        }
        for m in layout.measures:
            value, quality = self.generator.advance(states[m], interval_minutes)
            row[m] = value
            row[layout.quality[m]] = quality
        return row

    def _flush(
        self,
        conn: Connection,
        table: str,
        batch: List[Dict[str, Any]],
        last_timestamp: datetime,
        final: bool = False,
    ) -> None:
        self._transition(RunState.FLUSHING)
        written = self.adapter.insert_batch(conn, table, batch)
        self.rows_inserted += written
        self.batches += 1

        progress = Progress(self.rows_inserted, last_timestamp, written, final=final)
        if final:
            logger.info(f"{self.rows_inserted} rows inserted (final).")
        else:
            logger.info(f"{self.rows_inserted} rows inserted (last timestamp {last_timestamp:%Y-%m-%d %H:%M:%S}).")
        if self.on_progress is not None:
            self.on_progress(progress)
