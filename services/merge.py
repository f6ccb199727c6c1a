"""
Join per-source result sets into one view per event
"""

from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from models import Event, EventView

_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


def index_by(items: Iterable, key: Callable = lambda item: item.event_id) -> Dict:
    """Map key -> item, keeping the first item seen for each key"""
    index = {}
    for item in items:
        index.setdefault(key(item), item)
    return index


def group_by(items: Iterable, key: Callable = lambda item: item.event_id) -> Dict[str, List]:
    """Map key -> list of items, preserving input order within each group"""
    groups: Dict[str, List] = {}
    for item in items:
        groups.setdefault(key(item), []).append(item)
    return groups


def _parse_start(value: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def sort_events(events: Iterable[Event]) -> List[Event]:
    """
    Ascending start time. Python's sort is stable so ties keep their input
    order; events without a parseable start time go last.
    """
    return sorted(events, key=lambda e: _parse_start(e.start_time_utc) or _FAR_FUTURE)


def merge_events(events: Iterable[Event], annotations: Mapping[str, Mapping]) -> List[EventView]:
    """
    Attach every annotation kind to its event by exact id match.

    ``annotations`` maps an ``EventView`` field name (``projection``,
    ``possession``, ``fair_line``, ``edges``) to a mapping keyed by event id.
    Missing keys leave the field at its default; keys with no matching event
    are ignored.
    """
    views = []
    for event in sort_events(events):
        attached = {}
        for kind, by_id in annotations.items():
            value = by_id.get(event.event_id)
            if value is not None:
                attached[kind] = value
        views.append(EventView(event=event, **attached))
    return views
