"""
Concurrent fan-out over independent backend sources
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from config import Config
from logger import log
from .errors import AuthExpired, GatewayError, MalformedPayload, Unauthorized


@dataclass
class SourceSpec:
    """
    One backend source: where to fetch it and how to parse the payload.
    ``parse({})`` must return the empty value for the slice.
    """
    name: str
    path: str
    parse: Callable[[Any], Any]
    params: Optional[Dict[str, Any]] = None

    def empty(self) -> Any:
        return self.parse({})


@dataclass
class Frame:
    """Every slice produced by one poll cycle"""
    slices: Dict[str, Any] = field(default_factory=dict)
    failed: Dict[str, str] = field(default_factory=dict)
    started_at: Optional[str] = None
    finished_at: Optional[str] = None

    def __getitem__(self, name: str) -> Any:
        return self.slices[name]

    def get(self, name: str, default: Any = None) -> Any:
        return self.slices.get(name, default)

    def ok(self, name: str) -> bool:
        return name in self.slices and name not in self.failed


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class MultiSourcePoller:
    """
    Requests every source concurrently through the gateway and assembles one
    ``Frame``. A failing source only empties its own slice; an authorization
    failure on any source aborts the whole poll with ``AuthExpired``.
    """

    def __init__(self, gateway, max_workers: int = Config.POLL_MAX_WORKERS):
        self.gateway = gateway
        self.max_workers = max_workers

    def _fetch(self, source: SourceSpec) -> Any:
        payload = self.gateway.get(source.path, params=source.params)
        try:
            return source.parse(payload)
        except Exception as e:
            raise MalformedPayload(f"could not parse payload: {e!r}", source.path) from e

    def poll_all(self, sources: List[SourceSpec]) -> Frame:
        frame = Frame(started_at=_now())
        if not sources:
            frame.finished_at = _now()
            return frame

        workers = max(1, min(self.max_workers, len(sources)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix='poll') as executor:
            futures = [(source, executor.submit(self._fetch, source)) for source in sources]

            expired_by = None
            for source, future in futures:
                try:
                    frame.slices[source.name] = future.result()
                except Unauthorized:
                    expired_by = expired_by or source.name
                except GatewayError as e:
                    log(f"[WARNING] Source '{source.name}' unavailable: {e}")
                    frame.failed[source.name] = str(e)
                    frame.slices[source.name] = source.empty()

        if expired_by:
            log(f"[WARNING] Poll aborted: '{expired_by}' reported an expired session")
            raise AuthExpired(expired_by)

        frame.finished_at = _now()
        log(f"[DEBUG] Poll finished: {len(sources) - len(frame.failed)}/{len(sources)} sources ok")
        return frame
