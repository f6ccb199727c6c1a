"""
Data models for the live dashboard

Every model is built from a raw JSON mapping through ``from_dict``. Missing or
wrong-typed fields fall back to empty values so that the merge and filter
layers never see a partially shaped record.
"""

import math
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional


def _text(value: Any, default: str = '') -> str:
    if value is None:
        return default
    return value if isinstance(value, str) else str(value)


def _opt_text(value: Any) -> Optional[str]:
    if value is None or value == '':
        return None
    return _text(value)


def _number(value: Any) -> Optional[float]:
    """Finite float or None; NaN and infinities count as missing"""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        number = float(value)
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _int(value: Any) -> Optional[int]:
    number = _number(value)
    return int(number) if number is not None else None


def _mapping(value: Any) -> Dict:
    return value if isinstance(value, dict) else {}


def _event_id(raw: Dict) -> str:
    return _text(raw.get('gameId', raw.get('eventId')))


def parse_items(payload: Any, model, key: str = 'items') -> List:
    """
    Parse ``payload[key]`` into a list of ``model`` instances.
    Non-mapping payloads, non-list collections and rows without an id are dropped.
    """
    rows = _mapping(payload).get(key)
    if not isinstance(rows, list):
        return []

    parsed = []
    for raw in rows:
        if not isinstance(raw, dict):
            continue
        item = model.from_dict(raw)
        if item.event_id:
            parsed.append(item)
    return parsed


@dataclass
class UserPublic:
    """Current user as returned by the auth service"""
    id: str
    email: str
    plan: str = 'FREE'
    billing_customer_id: Optional[str] = None
    created_at: str = ''
    updated_at: str = ''

    @classmethod
    def from_dict(cls, raw: Any) -> 'UserPublic':
        raw = _mapping(raw)
        plan = _text(raw.get('plan'), 'FREE').upper()
        return cls(
            id=_text(raw.get('id')),
            email=_text(raw.get('email')),
            plan=plan if plan in ('FREE', 'PRO') else 'FREE',
            billing_customer_id=_opt_text(raw.get('stripe_customer_id')),
            created_at=_text(raw.get('created_at')),
            updated_at=_text(raw.get('updated_at'))
        )

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class TeamScore:
    code: str
    score: int = 0

    @classmethod
    def from_dict(cls, raw: Any) -> 'TeamScore':
        raw = _mapping(raw)
        return cls(
            code=_text(raw.get('teamTricode', raw.get('code'))),
            score=_int(raw.get('score')) or 0
        )


@dataclass
class Event:
    """One scheduled or live game from the scoreboard"""
    event_id: str
    status: Optional[int]
    status_text: str
    start_time_utc: str
    home: TeamScore
    away: TeamScore

    @classmethod
    def from_dict(cls, raw: Dict) -> 'Event':
        return cls(
            event_id=_event_id(raw),
            status=_int(raw.get('gameStatus')),
            status_text=_text(raw.get('gameStatusText')),
            start_time_utc=_text(raw.get('gameTimeUTC')),
            home=TeamScore.from_dict(raw.get('home')),
            away=TeamScore.from_dict(raw.get('away'))
        )

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class Projection:
    event_id: str
    home_win_prob: Optional[float] = None
    away_win_prob: Optional[float] = None

    @classmethod
    def from_dict(cls, raw: Dict) -> 'Projection':
        return cls(
            event_id=_event_id(raw),
            home_win_prob=_number(raw.get('homeWinProb')),
            away_win_prob=_number(raw.get('awayWinProb'))
        )

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class Possession:
    event_id: str
    possession: Optional[str] = None  # HOME, AWAY or None

    @classmethod
    def from_dict(cls, raw: Dict) -> 'Possession':
        side = _text(raw.get('possession')).upper()
        return cls(
            event_id=_event_id(raw),
            possession=side if side in ('HOME', 'AWAY') else None
        )

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class FairLine:
    """Model fair lines and win probabilities for a game"""
    event_id: str
    home: str = ''
    away: str = ''
    spread_home: Optional[float] = None
    total: Optional[float] = None
    home_win_prob: Optional[float] = None
    away_win_prob: Optional[float] = None
    dist: Dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Dict) -> 'FairLine':
        fair = _mapping(raw.get('fair'))
        prob = _mapping(raw.get('prob'))
        return cls(
            event_id=_event_id(raw),
            home=_text(raw.get('home')),
            away=_text(raw.get('away')),
            spread_home=_number(fair.get('spreadHome')),
            total=_number(fair.get('total')),
            home_win_prob=_number(prob.get('homeWin')),
            away_win_prob=_number(prob.get('awayWin')),
            dist=_mapping(raw.get('dist'))
        )

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class Opportunity:
    """A single book/market/pick combination with its expected value"""
    event_id: str
    book: str = ''
    source: str = ''
    market: str = ''
    pick: str = ''
    book_line: Optional[float] = None
    fair_line: Optional[float] = None
    price: Optional[float] = None
    implied_prob: Optional[float] = None
    model_prob: Optional[float] = None
    expected_value: float = 0.0
    fetched_at: Optional[str] = None
    home: str = ''
    away: str = ''
    start_time_utc: Optional[str] = None
    status: Optional[int] = None
    status_text: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Dict) -> 'Opportunity':
        return cls(
            event_id=_event_id(raw),
            book=_text(raw.get('book')),
            source=_text(raw.get('source')),
            market=_text(raw.get('market')),
            pick=_text(raw.get('pick')),
            book_line=_number(raw.get('book_line')),
            fair_line=_number(raw.get('fair_line')),
            price=_number(raw.get('odds_decimal')),
            implied_prob=_number(raw.get('implied_prob')),
            model_prob=_number(raw.get('model_prob')),
            expected_value=_number(raw.get('ev')) or 0.0,
            fetched_at=_opt_text(raw.get('fetched_at')),
            home=_text(raw.get('home')),
            away=_text(raw.get('away')),
            start_time_utc=_opt_text(raw.get('gameTimeUTC')),
            status=_int(raw.get('gameStatus')),
            status_text=_opt_text(raw.get('gameStatusText'))
        )

    @property
    def row_key(self) -> str:
        return f"{self.event_id}-{self.book}-{self.pick}-{self.book_line}-{self.price}"

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class EventView:
    """An event with every annotation joined to it"""
    event: Event
    projection: Optional[Projection] = None
    possession: Optional[Possession] = None
    fair_line: Optional[FairLine] = None
    edges: List[Opportunity] = field(default_factory=list)

    @property
    def event_id(self) -> str:
        return self.event.event_id

    def to_dict(self) -> Dict:
        return {
            'event': self.event.to_dict(),
            'projection': self.projection.to_dict() if self.projection else None,
            'possession': self.possession.to_dict() if self.possession else None,
            'fair_line': self.fair_line.to_dict() if self.fair_line else None,
            'edges': [e.to_dict() for e in self.edges]
        }
