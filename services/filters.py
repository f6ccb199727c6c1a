"""
Client-side filtering and display formatting

Everything here is pure: inputs are never mutated and the same inputs always
produce the same output.
"""

import math
import threading
from dataclasses import dataclass, replace
from typing import Any, Callable, Iterable, List, Optional

from config import Config
from models import Opportunity

MISSING = '—'


def _round_half_up(value: Optional[float], digits: int = 0) -> Optional[float]:
    """Half-up rounding; None when the value is missing or not finite"""
    if value is None or not math.isfinite(value):
        return None
    scale = 10 ** digits
    scaled = value * scale + 0.5
    if not math.isfinite(scaled):
        return None
    return math.floor(scaled) / scale


def _plain(value: float) -> str:
    """Render a number without a trailing '.0' when it is integral"""
    if value == int(value):
        return str(int(value))
    return repr(value)


def format_pct(prob: Optional[float]) -> str:
    """0.486 -> '49%'"""
    rounded = _round_half_up(prob * 100 if prob is not None else None)
    return MISSING if rounded is None else f"{_plain(rounded)}%"


def format_signed_line(line: Optional[float]) -> str:
    """Round to one decimal, then prefix positive values with '+'"""
    rounded = _round_half_up(line, 1)
    if rounded is None:
        return MISSING
    text = _plain(rounded)
    return f"+{text}" if rounded > 0 else text


def format_ev(ev: Optional[float]) -> str:
    """Expected value in percent with one decimal: 0.0234 -> '2.3%'"""
    permille = _round_half_up(ev * 1000 if ev is not None else None)
    return MISSING if permille is None else f"{_plain(permille / 10)}%"


def format_number(value: Optional[float]) -> str:
    """Two-decimal display used for odds and lines: 1.956 -> '1.96'"""
    rounded = _round_half_up(value, 2)
    return MISSING if rounded is None else _plain(rounded)


def logo_url(code: str) -> str:
    return Config.TEAM_LOGO_URL.format(code=(code or '').lower())


def _clamp(value, bounds):
    low, high = bounds
    return max(low, min(high, value))


@dataclass(frozen=True)
class FilterState:
    """User-controlled filters for the opportunity list"""
    market: str = Config.DEFAULT_MARKET
    min_ev: float = Config.DEFAULT_MIN_EV
    max_results: int = Config.DEFAULT_MAX_RESULTS
    book_query: str = ''

    def normalized(self) -> 'FilterState':
        market = self.market if self.market in Config.MARKETS else Config.DEFAULT_MARKET
        return replace(
            self,
            market=market,
            min_ev=_clamp(float(self.min_ev), Config.MIN_EV_BOUNDS),
            max_results=int(_clamp(int(self.max_results), Config.MAX_RESULTS_BOUNDS)),
            book_query=self.book_query or ''
        )

    def query_params(self) -> dict:
        """Upstream query; ``max_results`` is only enforced server-side"""
        return {
            'market': self.market,
            'min_ev': self.min_ev,
            'max_results': self.max_results
        }

    def same_query(self, other: 'FilterState') -> bool:
        return self.query_params() == other.query_params()


def filter_opportunities(rows: Iterable[Opportunity], state: FilterState) -> List[Opportunity]:
    """
    Keep rows matching the market, at or above ``min_ev`` and whose book
    contains ``book_query`` (case-insensitive). Never truncates.
    """
    query = state.book_query.strip().lower()
    return [
        row for row in rows
        if row.market == state.market
        and row.expected_value >= state.min_ev
        and (not query or query in (row.book or '').lower())
    ]


def sort_opportunities(rows: Iterable[Opportunity], key: str = 'expected_value',
                       descending: bool = True) -> List[Opportunity]:
    """Sort on any Opportunity field; rows with a missing value go last"""
    rows = list(rows)
    present = [r for r in rows if getattr(r, key) is not None]
    missing = [r for r in rows if getattr(r, key) is None]
    return sorted(present, key=lambda r: getattr(r, key), reverse=descending) + missing


class LastCallMemo:
    """
    Remembers the result of the last call. The data argument is compared by
    identity (a new poll always produces a new object), the filter state by
    equality.
    """

    def __init__(self, func: Callable[[Any, Any], Any]):
        self.func = func
        self._lock = threading.Lock()
        self._last_data = None
        self._last_state = None
        self._last_result = None
        self._has_result = False
        self.calls = 0

    def __call__(self, data, state):
        with self._lock:
            if self._has_result and data is self._last_data and state == self._last_state:
                return self._last_result
            result = self.func(data, state)
            self.calls += 1
            self._last_data, self._last_state, self._last_result = data, state, result
            self._has_result = True
            return result
