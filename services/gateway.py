"""
Authenticated HTTP gateway to the dashboard backend
"""

from typing import Any, Dict, Optional

import requests

from config import Config
from logger import log
from .errors import Unauthorized, ServerError, NetworkError, MalformedPayload


def _safe_json(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


class ApiGateway:
    """
    Wraps every outbound call with the stored bearer credential.

    Successful calls return the decoded JSON body. Failures are raised as a
    ``GatewayError`` subclass so the caller can decide how to degrade:

    - ``Unauthorized``     HTTP 401/403
    - ``ServerError``      any other non-2xx status
    - ``NetworkError``     transport failure
    - ``MalformedPayload`` 2xx body that is not JSON

    No retries are attempted.
    """

    AUTH_STATUSES = (401, 403)

    def __init__(self, session_store, base_url: Optional[str] = None,
                 timeout: Optional[float] = None, http: Optional[requests.Session] = None):
        self.session_store = session_store
        self.base_url = (Config.API_BASE if base_url is None else base_url).rstrip('/')
        self.timeout = Config.API_TIMEOUT if timeout is None else timeout
        self.http = http or requests.Session()
        self.http.headers.update({
            'User-Agent': Config.USER_AGENT,
            'Accept': 'application/json'
        })

    def _headers(self) -> Dict[str, str]:
        token = self.session_store.get()
        return {'Authorization': f'Bearer {token}'} if token else {}

    def request(self, path: str, method: str = 'GET', params: Optional[Dict] = None,
                json_body: Any = None, form: Optional[Dict[str, str]] = None,
                authenticated: bool = True) -> Any:
        """Perform a call and return the decoded JSON payload"""
        url = f"{self.base_url}{path}"
        try:
            response = self.http.request(
                method,
                url,
                params=params,
                json=json_body,
                data=form,
                headers=self._headers() if authenticated else {},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise NetworkError(f"{method} {path} failed: {e}", path) from e

        status = response.status_code
        if status in self.AUTH_STATUSES:
            raise Unauthorized(f"{method} {path} returned {status}", path, _safe_json(response))
        if not 200 <= status < 300:
            raise ServerError(f"{method} {path} returned {status}", path,
                              _safe_json(response), status=status)

        try:
            return response.json()
        except ValueError as e:
            log(f"[WARNING] {method} {path}: response body is not JSON")
            raise MalformedPayload(f"{method} {path} returned invalid JSON: {e}", path) from e

    def get(self, path: str, params: Optional[Dict] = None) -> Any:
        return self.request(path, params=params)

    def post_json(self, path: str, body: Any) -> Any:
        return self.request(path, method='POST', json_body=body, authenticated=False)

    def post_form(self, path: str, form: Dict[str, str]) -> Any:
        return self.request(path, method='POST', form=form, authenticated=False)
