import pytest

from models import Opportunity
from services.filters import (
    FilterState, LastCallMemo, filter_opportunities, format_ev, format_number, format_pct,
    format_signed_line, logo_url, sort_opportunities
)
from tests.conftest import edge


@pytest.mark.parametrize('prob, expected', [
    (0.486, '49%'), (0.5, '50%'), (0.514, '51%'), (1.0, '100%'), (0.0, '0%'), (None, '—'),
    (float('nan'), '—'), (float('inf'), '—'),
])
def test_format_pct(prob, expected):
    assert format_pct(prob) == expected


@pytest.mark.parametrize('line, expected', [
    (-3.4, '-3.4'), (3.0, '+3'), (2.96, '+3'), (0.5, '+0.5'), (0, '0'), (-0.04, '0'),
    (-7.0, '-7'), (None, '—'), (float('-inf'), '—'), (float('nan'), '—'),
])
def test_format_signed_line(line, expected):
    assert format_signed_line(line) == expected


@pytest.mark.parametrize('ev, expected', [
    (0.0234, '2.3%'), (0.02, '2%'), (0.15, '15%'), (0.0, '0%'), (None, '—'),
    (float('inf'), '—'), (float('nan'), '—'), (1e307, '—'),
])
def test_format_ev(ev, expected):
    assert format_ev(ev) == expected


def test_format_number():
    assert format_number(1.956) == '1.96'
    assert format_number(-2.5) == '-2.5'
    assert format_number(221.0) == '221'
    assert format_number(float('nan')) == '—'
    assert format_number(1e308) == '—'


def test_logo_url_lowercases_code():
    assert '/nba/500/bos.png' in logo_url('BOS')


def _rows():
    return [
        Opportunity.from_dict(edge(book='FanDuel', ev=0.031)),
        Opportunity.from_dict(edge(book='DraftKings', ev=0.024)),
        Opportunity.from_dict(edge(book='fanatics', ev=0.010)),
        Opportunity.from_dict(edge(book='FanDuel', market='totals', ev=0.05, pick='Over 221.5')),
    ]


def test_market_and_min_ev():
    kept = filter_opportunities(_rows(), FilterState(market='spreads', min_ev=0.02))
    assert [r.book for r in kept] == ['FanDuel', 'DraftKings']


def test_min_ev_is_inclusive():
    kept = filter_opportunities(_rows(), FilterState(min_ev=0.024))
    assert [r.expected_value for r in kept] == [0.031, 0.024]


def test_book_query_case_insensitive_substring():
    kept = filter_opportunities(_rows(), FilterState(min_ev=0.0, book_query='  FAN '))
    assert [r.book for r in kept] == ['FanDuel', 'fanatics']


def test_empty_query_matches_all():
    assert len(filter_opportunities(_rows(), FilterState(min_ev=0.0, book_query=''))) == 3


def test_no_truncation_to_max_results():
    rows = [Opportunity.from_dict(edge(pick=f'p{i}')) for i in range(30)]
    assert len(filter_opportunities(rows, FilterState(max_results=10))) == 30


def test_filter_is_idempotent_and_pure():
    rows = _rows()
    state = FilterState(min_ev=0.02, book_query='fan')
    once = filter_opportunities(rows, state)
    assert filter_opportunities(once, state) == once
    assert len(rows) == 4


def test_sort_opportunities_missing_last():
    rows = [Opportunity('a', book_line=None), Opportunity('b', book_line=-1.0),
            Opportunity('c', book_line=3.0)]
    assert [r.event_id for r in sort_opportunities(rows, key='book_line')] == ['c', 'b', 'a']
    assert [r.event_id for r in sort_opportunities(rows, key='book_line', descending=False)] == \
        ['b', 'c', 'a']


def test_filter_state_normalized_clamps():
    state = FilterState(market='moneyline', min_ev=0.5, max_results=1000).normalized()
    assert state.market == 'spreads'
    assert state.min_ev == 0.15
    assert state.max_results == 200
    assert FilterState(max_results=1).normalized().max_results == 10


def test_query_params_ignore_book_query():
    a = FilterState(book_query='fan')
    b = FilterState(book_query='dk')
    assert a.same_query(b)
    assert a.query_params() == {'market': 'spreads', 'min_ev': 0.02, 'max_results': 50}
    assert not a.same_query(FilterState(market='totals'))


def test_last_call_memo():
    memo = LastCallMemo(filter_opportunities)
    rows = _rows()
    state = FilterState()
    first = memo(rows, state)
    assert memo(rows, FilterState()) is first
    assert memo.calls == 1

    memo(list(rows), state)
    assert memo.calls == 2
    memo(rows, FilterState(book_query='dk'))
    assert memo.calls == 3
