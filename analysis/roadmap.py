"""
Roadmap assembler - orchestrates windowing, alignment and timeline for one
(metric, crisis) request.

Lifecycle: IDLE -> FETCHING_INPUTS -> WINDOWING -> SEARCHING -> ASSEMBLED,
with FAILED reachable from any non-terminal state. No partial results.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Callable, List, Dict, Any, Optional, Tuple

from analysis.calculations.alignment import AlignmentResult, find_best_alignment
from analysis.calculations.timeline import ChartFrame, build_timeline
from analysis.calculations.windows import (
    as_date,
    extract_current_window,
    extract_historical_window,
)
from analysis.crises import CrisisDefinition, get_crisis
from analysis.errors import (
    EmptyInputError,
    InsufficientDataError,
    InvalidRequestError,
)


logger = logging.getLogger(__name__)

# Metric name -> stored series slug
METRIC_SERIES = {
    'price': 'spx_price_monthly',
    'pe': 'spx_pe_monthly',
}

DEFAULT_WINDOW_MONTHS = 120
DEFAULT_MAX_SHIFT_MONTHS = 36
WINDOW_MONTHS_RANGE = (12, 180)
MAX_SHIFT_MONTHS_RANGE = (0, 48)
MIN_HISTORICAL_POINTS = 20
MAX_COMPARISON_WINDOW = 30

PointsFetcher = Callable[[str], List[Dict[str, Any]]]


class RoadmapState(str, Enum):
    """Assembler lifecycle states."""
    IDLE = 'idle'
    FETCHING_INPUTS = 'fetching_inputs'
    WINDOWING = 'windowing'
    SEARCHING = 'searching'
    ASSEMBLED = 'assembled'
    FAILED = 'failed'


TERMINAL_STATES = frozenset({RoadmapState.ASSEMBLED, RoadmapState.FAILED})


@dataclass(frozen=True)
class RoadmapResult:
    """Complete roadmap for one request. Immutable once built."""
    crisis: CrisisDefinition
    metric: str
    current_series: Tuple[Dict[str, Any], ...]
    last_period: date
    alignment: AlignmentResult
    chart: ChartFrame
    window_months: int
    max_shift_months: int
    computed_at: datetime

    @property
    def months_to_crash(self) -> int:
        return self.chart.months_to_crash

    def to_dict(self, precision: Optional[int] = 4) -> Dict[str, Any]:
        """
        JSON-ready representation.

        Args:
            precision: Decimal places for display rounding (None keeps full floats)
        """
        def rnd(value):
            return value if precision is None else round(value, precision)

        return {
            'crisis': self.crisis.to_dict(),
            'current': {
                'series': [
                    {'period': as_date(p['period']).isoformat(), 'value': rnd(float(p['value']))}
                    for p in self.current_series
                ],
                'last_period': self.last_period.isoformat(),
            },
            'alignment': {
                'months_to_bottom': self.alignment.months_to_bottom,
                'months_to_crash': self.months_to_crash,
                'scale_factor': rnd(self.alignment.scale_factor),
                'correlation': rnd(self.alignment.correlation),
                'comparison_window_size': self.alignment.comparison_window_size,
            },
            'chart': self.chart.to_dict(precision),
            'meta': {
                'window_months': self.window_months,
                'max_shift_months': self.max_shift_months,
                'metric': self.metric,
                'computed_at': self.computed_at.isoformat(),
            },
        }


def validate_request(metric: str, window_months: int, max_shift_months: int) -> None:
    """
    Check request parameters against the supported ranges.

    Raises:
        InvalidRequestError: If any parameter is out of range
    """
    if metric not in METRIC_SERIES:
        raise InvalidRequestError(
            f"Invalid metric: {metric!r}. Must be one of: {', '.join(METRIC_SERIES)}"
        )

    low, high = WINDOW_MONTHS_RANGE
    if not isinstance(window_months, int) or not low <= window_months <= high:
        raise InvalidRequestError(
            f"Invalid window: {window_months!r}. Must be between {low} and {high}"
        )

    low, high = MAX_SHIFT_MONTHS_RANGE
    if not isinstance(max_shift_months, int) or not low <= max_shift_months <= high:
        raise InvalidRequestError(
            f"Invalid shift: {max_shift_months!r}. Must be between {low} and {high}"
        )


class RoadmapAssembler:
    """
    Single-request orchestrator.

    Args:
        fetch_points: Callable returning the points of a series slug
    """

    def __init__(self, fetch_points: PointsFetcher):
        self._fetch_points = fetch_points
        self.state = RoadmapState.IDLE
        self.history: List[RoadmapState] = [RoadmapState.IDLE]
        self.error: Optional[Exception] = None

    def _transition(self, state: RoadmapState) -> None:
        logger.debug("Roadmap state %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def assemble(
        self,
        metric: str,
        crisis_id: str,
        window_months: int = DEFAULT_WINDOW_MONTHS,
        max_shift_months: int = DEFAULT_MAX_SHIFT_MONTHS
    ) -> RoadmapResult:
        """
        Run the full request.

        Args:
            metric: 'price' or 'pe'
            crisis_id: Catalog identifier (e.g. '2008')
            window_months: Current and historical window length
            max_shift_months: Carried into result metadata

        Returns:
            RoadmapResult

        Raises:
            InvalidCrisisError: Unknown crisis (raised before any series lookup)
            InvalidRequestError: Parameters out of range
            InsufficientDataError: Empty inputs or short historical window
            RuntimeError: If the assembler was already used
        """
        if self.state != RoadmapState.IDLE:
            raise RuntimeError(f"Assembler already used (state={self.state.value})")

        try:
            return self._run(metric, crisis_id, window_months, max_shift_months)
        except Exception as e:
            self.error = e
            self._transition(RoadmapState.FAILED)
            logger.warning("Roadmap %s/%s failed: %s", metric, crisis_id, e)
            raise

    def _run(
        self,
        metric: str,
        crisis_id: str,
        window_months: int,
        max_shift_months: int
    ) -> RoadmapResult:
        crisis = get_crisis(crisis_id)
        validate_request(metric, window_months, max_shift_months)

        self._transition(RoadmapState.FETCHING_INPUTS)
        series_slug = METRIC_SERIES[metric]
        points = self._fetch_points(series_slug)
        if not points:
            raise EmptyInputError(f"No data found for series: {series_slug}")

        logger.info(
            "Loaded %d points for %s (%s to %s)",
            len(points), series_slug, points[0]['period'], points[-1]['period']
        )

        self._transition(RoadmapState.WINDOWING)
        current_window = extract_current_window(points, window_months)
        if not current_window:
            raise InsufficientDataError("Current window is empty")

        historical_window = extract_historical_window(points, crisis.bottom_date, window_months)
        if len(historical_window) < MIN_HISTORICAL_POINTS:
            raise InsufficientDataError(
                f"Not enough historical data for crisis {crisis.crisis_id}: "
                f"{len(historical_window)} points, need {MIN_HISTORICAL_POINTS}"
            )

        logger.info(
            "Windows for %s: current=%d points (last %s), historical=%d points (bottom %s)",
            crisis.crisis_id, len(current_window), current_window[-1]['period'],
            len(historical_window), crisis.bottom_date
        )

        self._transition(RoadmapState.SEARCHING)
        comparison_window_size = min(MAX_COMPARISON_WINDOW, window_months // 2)
        alignment = find_best_alignment(current_window, historical_window, comparison_window_size)

        logger.info(
            "Best alignment for %s: %d months to bottom, scale=%.2f, corr=%.3f, window=%d",
            crisis.crisis_id, alignment.months_to_bottom, alignment.scale_factor,
            alignment.correlation, alignment.comparison_window_size
        )

        chart = build_timeline(historical_window, current_window, alignment, crisis.crash_date)

        result = RoadmapResult(
            crisis=crisis,
            metric=metric,
            current_series=tuple(dict(p) for p in current_window),
            last_period=as_date(current_window[-1]['period']),
            alignment=alignment,
            chart=chart,
            window_months=window_months,
            max_shift_months=max_shift_months,
            computed_at=datetime.now(timezone.utc)
        )

        self._transition(RoadmapState.ASSEMBLED)
        return result


def compute_roadmap(
    fetch_points: PointsFetcher,
    metric: str,
    crisis_id: str,
    window_months: int = DEFAULT_WINDOW_MONTHS,
    max_shift_months: int = DEFAULT_MAX_SHIFT_MONTHS
) -> RoadmapResult:
    """Compute a roadmap with a fresh assembler."""
    assembler = RoadmapAssembler(fetch_points)
    return assembler.assemble(metric, crisis_id, window_months, max_shift_months)
