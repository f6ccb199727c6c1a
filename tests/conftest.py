import threading
from urllib.parse import urlparse

import pytest
import requests

import logger
from auth import SessionStore
from services.gateway import ApiGateway

BASE_URL = 'http://api.test'


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self._text = text

    def json(self):
        if self._text is not None:
            raise ValueError(f"Expecting value: {self._text!r}")
        return self._payload


class FakeHttp:
    """
    Stand-in for requests.Session. Routes map a path to a FakeResponse, an
    exception instance, or a callable returning either.
    """

    def __init__(self, routes=None):
        self.headers = {}
        self.routes = dict(routes or {})
        self.calls = []
        self._lock = threading.Lock()

    def request(self, method, url, params=None, json=None, data=None, headers=None, timeout=None):
        path = urlparse(url).path
        with self._lock:
            self.calls.append({
                'method': method, 'path': path, 'params': params, 'json': json,
                'data': data, 'headers': headers or {}, 'timeout': timeout
            })
        route = self.routes.get(path)
        if route is None:
            return FakeResponse(404, {'detail': 'Not Found'})
        if callable(route):
            route = route()
        if isinstance(route, Exception):
            raise route
        return route

    def paths(self):
        return [c['path'] for c in self.calls]


@pytest.fixture(autouse=True)
def tmp_log(tmp_path):
    logger.set_log_file(tmp_path / 'logs.txt')


@pytest.fixture
def store(tmp_path):
    return SessionStore(tmp_path / 'session.json')


@pytest.fixture
def logged_in_store(store):
    store.set('tok-123')
    return store


@pytest.fixture
def http():
    return FakeHttp()


@pytest.fixture
def gateway(logged_in_store, http):
    return ApiGateway(logged_in_store, base_url=BASE_URL, timeout=1, http=http)


def ok(payload):
    return FakeResponse(200, payload)


def status(code, payload=None):
    return FakeResponse(code, payload)


def not_json():
    return FakeResponse(200, text='<html>')


def connection_error():
    return requests.ConnectionError('connection refused')


SCOREBOARD = {
    'games': [
        {'gameId': 'g2', 'gameStatus': 1, 'gameStatusText': '7:30 pm ET',
         'gameTimeUTC': '2026-10-17T23:30:00Z',
         'home': {'teamTricode': 'BOS', 'score': 0}, 'away': {'teamTricode': 'NYK', 'score': 0}},
        {'gameId': 'g1', 'gameStatus': 2, 'gameStatusText': 'Q3 4:12',
         'gameTimeUTC': '2026-10-17T22:00:00Z',
         'home': {'teamTricode': 'LAL', 'score': 71}, 'away': {'teamTricode': 'DEN', 'score': 68}},
    ]
}

PROJECTIONS = {'items': [
    {'gameId': 'g1', 'homeWinProb': 0.486, 'awayWinProb': 0.514},
    {'gameId': 'zz', 'homeWinProb': 0.5, 'awayWinProb': 0.5},
]}

POSSESSION = {'items': [{'gameId': 'g1', 'possession': 'HOME'}]}

FAIRLINE = {'items': [
    {'gameId': 'g2', 'home': 'BOS', 'away': 'NYK',
     'fair': {'spreadHome': -3.4, 'total': 221.5},
     'prob': {'homeWin': 0.62, 'awayWin': 0.38}, 'dist': {'margin_sd': 12.1}},
]}


def edge(game_id='g1', book='FanDuel', market='spreads', ev=0.031, pick='LAL -2.5', fetched_at=None):
    return {
        'gameId': game_id, 'home': 'LAL', 'away': 'DEN', 'gameTimeUTC': '2026-10-17T22:00:00Z',
        'gameStatus': 2, 'gameStatusText': 'Q3 4:12', 'book': book, 'source': 'odds-api',
        'market': market, 'pick': pick, 'book_line': -2.5, 'fair_line': -3.4,
        'odds_decimal': 1.956, 'implied_prob': 0.511, 'model_prob': 0.527, 'ev': ev,
        'fetched_at': fetched_at or '2026-10-17T22:40:00Z'
    }


EDGES = {'items': [edge(), edge(book='DraftKings', ev=0.024, pick='LAL -2')]}
