"""
Services package: gateway, polling, merge, filtering and scheduling
"""

from .errors import (
    GatewayError, Unauthorized, ServerError, NetworkError, MalformedPayload, AuthExpired, LoginFailed
)
from .gateway import ApiGateway
from .poller import SourceSpec, Frame, MultiSourcePoller
from .merge import index_by, group_by, sort_events, merge_events
from .filters import (
    FilterState, filter_opportunities, sort_opportunities, format_pct, format_signed_line,
    format_ev, format_number, LastCallMemo
)
from .scheduler import RefreshScheduler, SchedulerState
from .dashboard import LiveDashboard, OpportunityBoard

__all__ = [
    'GatewayError',
    'Unauthorized',
    'ServerError',
    'NetworkError',
    'MalformedPayload',
    'AuthExpired',
    'LoginFailed',
    'ApiGateway',
    'SourceSpec',
    'Frame',
    'MultiSourcePoller',
    'index_by',
    'group_by',
    'sort_events',
    'merge_events',
    'FilterState',
    'filter_opportunities',
    'sort_opportunities',
    'format_pct',
    'format_signed_line',
    'format_ev',
    'format_number',
    'LastCallMemo',
    'RefreshScheduler',
    'SchedulerState',
    'LiveDashboard',
    'OpportunityBoard'
]
