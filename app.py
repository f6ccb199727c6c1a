"""
Flask JSON API that exposes the live dashboard state to the presentation layer
"""

from flask import Flask, jsonify, request
from flask_cors import CORS

from config import Config
from auth import SessionStore, login, logout, require_session, signup
from services import ApiGateway, LiveDashboard, OpportunityBoard, LoginFailed
from logger import log


def create_app(session_store: SessionStore = None, gateway: ApiGateway = None,
               dashboard: LiveDashboard = None, board: OpportunityBoard = None,
               start_polling: bool = True) -> Flask:
    """Wire the session, gateway and both polling views into a Flask app"""
    session_store = session_store or SessionStore()
    gateway = gateway or ApiGateway(session_store)
    dashboard = dashboard or LiveDashboard(gateway, session_store)
    board = board or OpportunityBoard(gateway, session_store)

    app = Flask(__name__)
    CORS(app)
    app.extensions['dashboard'] = dashboard
    app.extensions['opportunity_board'] = board

    def start_views():
        if dashboard.start():
            board.start()

    def stop_views():
        dashboard.stop()
        board.stop()

    def credentials():
        data = request.get_json(silent=True) or {}
        return (data.get('email') or '').strip(), data.get('password') or ''

    def session_body():
        # me stays None while the auth service is unreachable; polling retries it
        me = dashboard.me
        return {'me': me.to_dict() if me else None, 'error': dashboard.error}

    @app.route('/api/login', methods=['POST'])
    def login_route():
        """
        POST /api/login

        Request body: {"email": "...", "password": "..."}
        """
        email, password = credentials()
        if not email or not password:
            return jsonify({'error': 'Email and password required'}), 400
        try:
            login(gateway, session_store, email, password)
        except LoginFailed as e:
            return jsonify({'error': e.detail}), 401

        start_views()
        if not session_store.has_token():
            return jsonify({'error': dashboard.error}), 401
        return jsonify(session_body()), 200

    @app.route('/api/signup', methods=['POST'])
    def signup_route():
        email, password = credentials()
        if not email or not password:
            return jsonify({'error': 'Email and password required'}), 400
        try:
            signup(gateway, session_store, email, password)
        except LoginFailed as e:
            return jsonify({'error': e.detail}), 400

        start_views()
        if not session_store.has_token():
            return jsonify({'error': dashboard.error}), 401
        return jsonify(session_body()), 201

    @app.route('/api/logout', methods=['POST'])
    def logout_route():
        stop_views()
        logout(session_store)
        dashboard.me = None
        return jsonify({'status': 'logged_out'}), 200

    @app.route('/api/me', methods=['GET'])
    def me_route():
        if not dashboard.load_me():
            code = 401 if not session_store.has_token() else 503
            return jsonify({'error': dashboard.error}), code
        return jsonify(dashboard.me.to_dict()), 200

    @app.route('/api/dashboard', methods=['GET'])
    @require_session(session_store)
    def dashboard_route():
        """GET /api/dashboard - merged games with formatted annotations"""
        return jsonify(dashboard.snapshot()), 200

    @app.route('/api/opportunities', methods=['GET'])
    @require_session(session_store)
    def opportunities_route():
        """
        GET /api/opportunities?market=spreads&min_ev=0.02&max_results=50&book=fan

        Query parameters update the filter state before the list is returned.
        """
        changes = {}
        try:
            if 'market' in request.args:
                changes['market'] = request.args['market']
            if 'min_ev' in request.args:
                changes['min_ev'] = float(request.args['min_ev'])
            if 'max_results' in request.args:
                changes['max_results'] = int(request.args['max_results'])
        except ValueError:
            return jsonify({'error': 'min_ev must be a number and max_results an integer'}), 400
        if 'book' in request.args:
            changes['book_query'] = request.args['book']

        if changes:
            board.set_filters(**changes)
        return jsonify(board.snapshot()), 200

    @app.route('/api/refresh', methods=['POST'])
    @require_session(session_store)
    def refresh_route():
        """POST /api/refresh - poll both views now"""
        for view in (dashboard, board):
            if view.scheduler.running:
                view.scheduler.trigger()
            else:
                view.refresh()
        return jsonify({'status': 'refreshing'}), 202

    @app.route('/api/health', methods=['GET'])
    def health_check():
        """GET /api/health (Public)"""
        return jsonify({
            'status': 'healthy',
            'logged_in': session_store.has_token(),
            'schedulers': {
                view.scheduler.name: {
                    'state': view.scheduler.state.value,
                    'interval_seconds': view.scheduler.interval,
                    'polls': view.scheduler.poll_count,
                    'last_poll_at': view.scheduler.last_poll_at,
                    'last_error': view.scheduler.last_error
                }
                for view in (dashboard, board)
            }
        }), 200

    if start_polling and session_store.has_token():
        start_views()

    return app


if __name__ == '__main__':
    print("=" * 80)
    print("NBA Live Dashboard")
    print("=" * 80)
    print(f"\nBackend API: {Config.API_BASE or '(same origin)'}")
    print(f"Starting server on {Config.FLASK_HOST}:{Config.FLASK_PORT}")
    print(f"\nAPI Endpoints:")
    print(f"  - GET  http://localhost:{Config.FLASK_PORT}/api/health")
    print(f"  - GET  http://localhost:{Config.FLASK_PORT}/api/dashboard")
    print(f"  - GET  http://localhost:{Config.FLASK_PORT}/api/opportunities")
    print(f"\nPress Ctrl+C to stop")
    print("=" * 80 + "\n")

    log("[DEBUG] Dashboard server starting")
    app = create_app()
    app.run(
        host=Config.FLASK_HOST,
        port=Config.FLASK_PORT,
        debug=Config.FLASK_DEBUG
    )
