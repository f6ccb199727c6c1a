"""
Application configuration
"""
import os
from pathlib import Path


class Config:
    """Application configuration"""
    # Backend API (read once at startup)
    API_BASE = os.environ.get('NBA_API_BASE', '').rstrip('/')
    API_TIMEOUT = float(os.environ.get('NBA_API_TIMEOUT', 10))
    USER_AGENT = 'nba-live-dashboard/1.0'

    # Endpoints
    AUTH_ME_PATH = '/v1/auth/me'
    AUTH_LOGIN_PATH = '/v1/auth/login'
    AUTH_SIGNUP_PATH = '/v1/auth/signup'
    SCOREBOARD_PATH = '/v1/nba/scoreboard/today'
    PROJECTIONS_PATH = '/v1/nba/projections/today'
    POSSESSION_PATH = '/v1/nba/possession/today'
    FAIRLINE_PATH = '/v1/nba/fairline/today'
    EDGES_PATH = '/v1/nba/edges/today'

    # Session persistence
    SESSION_FILE = Path(os.environ.get(
        'NBA_SESSION_FILE',
        str(Path.home() / '.nba_dashboard' / 'session.json')
    ))
    SESSION_KEY = 'nba_token'

    # Data refresh settings
    DASHBOARD_REFRESH_SECONDS = 30
    OPPORTUNITY_REFRESH_SECONDS = 15
    POLL_MAX_WORKERS = 5

    # Opportunity filter defaults and bounds
    DEFAULT_MARKET = 'spreads'
    MARKETS = ('spreads', 'totals')
    DEFAULT_MIN_EV = 0.02
    MIN_EV_BOUNDS = (0.0, 0.15)
    DEFAULT_MAX_RESULTS = 50
    MAX_RESULTS_BOUNDS = (10, 200)

    # Logos
    TEAM_LOGO_URL = (
        'https://a.espncdn.com/combiner/i?img=/i/teamlogos/nba/500/{code}.png'
        '&w=80&h=80&transparent=true'
    )

    # Logging
    LOG_FILE = Path(os.environ.get('NBA_DASHBOARD_LOG', 'logs.txt'))

    # Flask config
    FLASK_HOST = '127.0.0.1'
    FLASK_PORT = int(os.environ.get('PORT', 5001))
    FLASK_DEBUG = False
