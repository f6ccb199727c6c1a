"""
Dashboard controllers - own the session-gated polling loop and hold the
latest merged view for the presentation layer
"""

import threading
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

from config import Config
from logger import log
from models import (
    Event, EventView, FairLine, Opportunity, Possession, Projection, UserPublic, parse_items
)
from .errors import AuthExpired, NetworkError, GatewayError
from .filters import (
    FilterState, LastCallMemo, filter_opportunities, format_ev, format_number, format_pct,
    format_signed_line, logo_url
)
from .merge import group_by, index_by, merge_events
from .poller import Frame, MultiSourcePoller, SourceSpec
from .scheduler import RefreshScheduler

SESSION_EXPIRED_MESSAGE = "Not logged in or session expired. Go back and log in again."


def parse_scoreboard(payload: Any) -> List[Event]:
    return parse_items(payload, Event, key='games')


def parse_projections(payload: Any) -> Dict[str, Projection]:
    return index_by(parse_items(payload, Projection))


def parse_possession(payload: Any) -> Dict[str, Possession]:
    return index_by(parse_items(payload, Possession))


def parse_fair_lines(payload: Any) -> Dict[str, FairLine]:
    return index_by(parse_items(payload, FairLine))


def parse_opportunities(payload: Any) -> List[Opportunity]:
    return parse_items(payload, Opportunity)


class _SessionGatedView:
    """Shared session handling for the polling controllers"""

    name = 'view'

    def __init__(self, gateway, session_store, poller: Optional[MultiSourcePoller] = None,
                 interval: float = Config.DASHBOARD_REFRESH_SECONDS):
        self.gateway = gateway
        self.session_store = session_store
        self.poller = poller or MultiSourcePoller(gateway)
        self.error: Optional[str] = None
        self.loading = False
        self._lock = threading.Lock()
        self.scheduler = RefreshScheduler(
            self.name,
            interval,
            task=self._poll,
            on_result=self._apply,
            on_error=self._handle_error,
            guard=self.session_store.has_token
        )

    @property
    def logged_in(self) -> bool:
        return self.session_store.has_token()

    def _poll(self):
        raise NotImplementedError

    def _apply(self, result):
        raise NotImplementedError

    def _handle_error(self, error: Exception):
        if isinstance(error, AuthExpired):
            self.expire_session()

    def expire_session(self, message: str = SESSION_EXPIRED_MESSAGE):
        """Drop the credential and stop polling until the next login"""
        log(f"[WARNING] {self.name}: session expired, clearing credential")
        self.session_store.clear()
        self.error = message
        self.scheduler.stop()

    def _set_loading(self, loading: bool):
        with self._lock:
            self.loading = loading

    def refresh(self) -> bool:
        """Poll once in the caller's thread. Returns False if the session expired."""
        try:
            result = self._poll()
        except AuthExpired:
            self.expire_session()
            return False
        self._apply(result)
        return True

    def start(self) -> bool:
        if not self.logged_in:
            self.error = SESSION_EXPIRED_MESSAGE
            return False
        self.error = None
        self.scheduler.start()
        return True

    def stop(self):
        self.scheduler.stop()


class LiveDashboard(_SessionGatedView):
    """
    Combined games view: scoreboard joined with projections, possession,
    fair lines and edges, refreshed every 30 seconds.
    """

    name = 'dashboard'

    def __init__(self, gateway, session_store, poller: Optional[MultiSourcePoller] = None,
                 interval: float = Config.DASHBOARD_REFRESH_SECONDS,
                 edge_filters: Optional[FilterState] = None):
        super().__init__(gateway, session_store, poller, interval)
        self.edge_filters = edge_filters or FilterState(min_ev=0.0)
        self.me: Optional[UserPublic] = None
        self.frame: Optional[Frame] = None
        self.views: List[EventView] = []

    def sources(self) -> List[SourceSpec]:
        return [
            SourceSpec('scoreboard', Config.SCOREBOARD_PATH, parse_scoreboard),
            SourceSpec('projections', Config.PROJECTIONS_PATH, parse_projections),
            SourceSpec('possession', Config.POSSESSION_PATH, parse_possession),
            SourceSpec('fairline', Config.FAIRLINE_PATH, parse_fair_lines),
            SourceSpec('edges', Config.EDGES_PATH, parse_opportunities,
                       params=self.edge_filters.query_params()),
        ]

    def _fetch_me(self) -> UserPublic:
        me = UserPublic.from_dict(self.gateway.get(Config.AUTH_ME_PATH))
        self.me = me
        self.error = None
        log(f"[DEBUG] Session valid for {me.email} ({me.plan})")
        return me

    def load_me(self) -> bool:
        """Check the stored credential against the auth service"""
        try:
            self._fetch_me()
        except NetworkError as e:
            log(f"[WARNING] Could not reach auth service: {e}")
            self.error = "Could not reach the server. Retry in a moment."
            return False
        except GatewayError:
            # Any non-OK answer means the session is no longer valid
            self.me = None
            self.expire_session()
            return False
        return True

    def start(self) -> bool:
        """
        Check the session, then arm polling. An unreachable auth service keeps
        the credential and polling armed; the user check is retried each tick.
        """
        if not self.logged_in:
            self.error = SESSION_EXPIRED_MESSAGE
            return False
        self.load_me()
        if not self.logged_in:
            return False
        self.scheduler.start()
        return True

    def expire_session(self, message: str = SESSION_EXPIRED_MESSAGE):
        self.me = None
        super().expire_session(message)

    def _poll(self) -> Tuple[Frame, List[EventView]]:
        if self.me is None:
            try:
                self._fetch_me()
            except NetworkError as e:
                log(f"[WARNING] Auth service still unreachable: {e}")
            except GatewayError as e:
                raise AuthExpired("auth.me") from e

        self._set_loading(True)
        try:
            frame = self.poller.poll_all(self.sources())
        finally:
            self._set_loading(False)

        views = merge_events(frame['scoreboard'], {
            'projection': frame['projections'],
            'possession': frame['possession'],
            'fair_line': frame['fairline'],
            'edges': group_by(frame['edges']),
        })
        log(f"[DEBUG] Dashboard: merged {len(views)} games")
        return frame, views

    def _apply(self, result: Tuple[Frame, List[EventView]]):
        frame, views = result
        with self._lock:
            self.frame = frame
            self.views = views

    def snapshot(self) -> Dict:
        """JSON-ready state for the presentation layer"""
        with self._lock:
            frame, views, loading = self.frame, self.views, self.loading
        return {
            'logged_in': self.logged_in,
            'me': self.me.to_dict() if self.me else None,
            'error': self.error,
            'loading': loading,
            'polled_at': frame.finished_at if frame else None,
            'degraded_sources': sorted(frame.failed) if frame else [],
            'games': [display_game(view) for view in views]
        }


def display_game(view: EventView) -> Dict:
    """Formatted card for one game"""
    event = view.event
    card = {
        'event_id': event.event_id,
        'status': event.status,
        'status_text': event.status_text,
        'start_time_utc': event.start_time_utc,
        'matchup': f"{event.away.code} @ {event.home.code}",
        'away': {'code': event.away.code, 'score': event.away.score, 'logo': logo_url(event.away.code)},
        'home': {'code': event.home.code, 'score': event.home.score, 'logo': logo_url(event.home.code)},
        'projection': None,
        'possession': view.possession.possession if view.possession else None,
        'fair_line': None,
        'edges': [display_opportunity(row) for row in view.edges]
    }
    if view.projection:
        card['projection'] = {
            'away_win': format_pct(view.projection.away_win_prob),
            'home_win': format_pct(view.projection.home_win_prob)
        }
    if view.fair_line:
        card['fair_line'] = {
            'spread_home': format_signed_line(view.fair_line.spread_home),
            'total': format_number(view.fair_line.total),
            'home_win': format_pct(view.fair_line.home_win_prob),
            'away_win': format_pct(view.fair_line.away_win_prob)
        }
    return card


def display_opportunity(row: Opportunity) -> Dict:
    """Formatted table row for one opportunity"""
    return {
        'key': row.row_key,
        'event_id': row.event_id,
        'matchup': f"{row.away} @ {row.home}",
        'status_text': row.status_text or '',
        'pick': row.pick,
        'book': row.book,
        'source': row.source,
        'market': row.market,
        'odds': format_number(row.price),
        'book_line': format_number(row.book_line),
        'fair_line': format_number(row.fair_line),
        'model_prob': format_pct(row.model_prob),
        'implied_prob': format_pct(row.implied_prob),
        'ev': format_ev(row.expected_value)
    }


class OpportunityBoard(_SessionGatedView):
    """
    Positive-EV list refreshed every 15 seconds. Market, minimum EV and max
    results are sent upstream; the book search only re-filters held rows.
    """

    name = 'opportunities'

    def __init__(self, gateway, session_store, poller: Optional[MultiSourcePoller] = None,
                 interval: float = Config.OPPORTUNITY_REFRESH_SECONDS,
                 filters: Optional[FilterState] = None):
        super().__init__(gateway, session_store, poller, interval)
        self.filters = (filters or FilterState()).normalized()
        self.fetched_at: Optional[str] = None
        self._rows: List[Opportunity] = []
        self._filtered = LastCallMemo(filter_opportunities)

    def source(self) -> SourceSpec:
        return SourceSpec('edges', Config.EDGES_PATH, parse_opportunities,
                          params=self.filters.query_params())

    def _poll(self) -> Frame:
        self._set_loading(True)
        try:
            return self.poller.poll_all([self.source()])
        finally:
            self._set_loading(False)

    def _apply(self, frame: Frame):
        rows = frame['edges']
        with self._lock:
            self._rows = rows
            if frame.ok('edges'):
                self.fetched_at = rows[0].fetched_at if rows else None

    def set_filters(self, **changes) -> FilterState:
        """Update filter state; restarts polling when the upstream query changes"""
        with self._lock:
            previous = self.filters
            self.filters = replace(previous, **changes).normalized()
            requery = not self.filters.same_query(previous)
        if requery and self.scheduler.running:
            log(f"[DEBUG] Opportunity filters changed upstream query: {self.filters.query_params()}")
            self.scheduler.start()
        return self.filters

    @property
    def all_rows(self) -> List[Opportunity]:
        with self._lock:
            return self._rows

    def rows(self) -> List[Opportunity]:
        with self._lock:
            rows, filters = self._rows, self.filters
        return self._filtered(rows, filters)

    def snapshot(self) -> Dict:
        rows = self.rows()
        with self._lock:
            loading = self.loading
        return {
            'logged_in': self.logged_in,
            'error': self.error,
            'loading': loading,
            'fetched_at': self.fetched_at,
            'refresh_seconds': self.scheduler.interval,
            'filters': {
                'market': self.filters.market,
                'min_ev': self.filters.min_ev,
                'min_ev_display': format_ev(self.filters.min_ev),
                'max_results': self.filters.max_results,
                'book_query': self.filters.book_query
            },
            'count': len(rows),
            'rows': [display_opportunity(row) for row in rows]
        }
