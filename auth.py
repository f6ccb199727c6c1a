"""
Session storage and login helpers for the bearer credential
"""

import json
import os
import threading
from functools import wraps
from pathlib import Path
from typing import Optional

from flask import jsonify

from config import Config
from logger import log
from services.errors import GatewayError, LoginFailed


class SessionStore:
    """
    Holds the current bearer credential in a small JSON file so that it
    survives restarts until explicitly cleared.

    The file is re-read on every ``get()``; concurrent writers are not
    coordinated and the last write wins.
    """

    def __init__(self, path: Path = Config.SESSION_FILE, key: str = Config.SESSION_KEY):
        self.path = Path(path)
        self.key = key
        self._lock = threading.Lock()

    def _read(self) -> dict:
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            log(f"[WARNING] Session file {self.path} unreadable, treating as logged out: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + '.tmp')
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(data, f)
        os.replace(tmp_path, self.path)

    def get(self) -> Optional[str]:
        """Return the stored credential, or None when logged out"""
        with self._lock:
            token = self._read().get(self.key)
        return token if isinstance(token, str) and token else None

    def set(self, token: str):
        with self._lock:
            data = self._read()
            data[self.key] = token
            self._write(data)

    def clear(self):
        with self._lock:
            data = self._read()
            if data.pop(self.key, None) is not None:
                self._write(data)

    def has_token(self) -> bool:
        return self.get() is not None


def login(gateway, store: SessionStore, email: str, password: str) -> str:
    """Exchange email/password for an access token and store it"""
    try:
        body = gateway.post_form(Config.AUTH_LOGIN_PATH, {'username': email, 'password': password})
    except GatewayError as e:
        raise LoginFailed(e.detail('Login failed')) from e

    token = body.get('access_token') if isinstance(body, dict) else None
    if not token:
        raise LoginFailed('Login failed')

    store.set(token)
    log(f"[DEBUG] Logged in as {email}")
    return token


def signup(gateway, store: SessionStore, email: str, password: str) -> str:
    """Create an account, then log in with the same credentials"""
    try:
        gateway.post_json(Config.AUTH_SIGNUP_PATH, {'email': email, 'password': password})
    except GatewayError as e:
        raise LoginFailed(e.detail('Signup failed')) from e
    return login(gateway, store, email, password)


def logout(store: SessionStore):
    store.clear()
    log("[DEBUG] Logged out")


def require_session(store: SessionStore):
    """Decorator factory: reject the route with 401 when no credential is stored"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not store.has_token():
                return jsonify({'error': 'Not logged in'}), 401
            return f(*args, **kwargs)
        return decorated_function
    return decorator
