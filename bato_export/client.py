from __future__ import annotations

import json
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urljoin

import requests

DEFAULT_BASE_URL = "https://bato.to"
API_PATH = "/ap2/"
UA = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36"
)


class BatoError(RuntimeError):
    """User-facing export failure. The CLI prints the message without a traceback."""


class FetchError(BatoError):
    """Transport, HTTP status, JSON or GraphQL error from the origin."""


def truncate_text(t: str, limit: int = 200) -> str:
    t = (t or "").replace('\n', ' ')[:limit]
    return t + ("..." if len(t) == limit else "")


class BatoClient:
    def __init__(self, base_url: str = DEFAULT_BASE_URL, cookie: Optional[str] = None, verify_tls: bool = True, request_timeout: float = 20.0, debug: bool = False):
        self.base_url = base_url.rstrip('/')
        self.sess = requests.Session()
        self.headers: Dict[str, str] = {"User-Agent": UA}
        if cookie:
            self.headers["Cookie"] = cookie
        self.verify = verify_tls
        self.timeout = request_timeout
        self.debug = debug
        self.last_status: Optional[int] = None

    def absolute_url(self, path: str) -> str:
        """Resolve an origin-relative path (``/media/...``) against the base URL."""
        return urljoin(self.base_url + "/", path)

    def request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = self.absolute_url(path)
        headers = dict(self.headers)
        headers.update(kwargs.pop("headers", {}) or {})
        if 'timeout' not in kwargs:
            kwargs['timeout'] = self.timeout
        try:
            resp = self.sess.request(method, url, headers=headers, verify=self.verify, **kwargs)
        except requests.RequestException as e:
            raise FetchError(f"Request to {url} failed: {e}") from e
        self.last_status = resp.status_code
        return resp

    # --- GraphQL ---
    def graphql(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """POST a query to the API endpoint and return its ``data`` object.

        Unlike asset downloads, every failure here is fatal for the export:
        transport errors, non-200 statuses, undecodable bodies and GraphQL
        ``errors`` all raise FetchError.
        """
        payload: Dict[str, Any] = {"query": query}
        if variables is not None:
            payload["variables"] = variables
        r = self.request("POST", API_PATH, headers={"Content-Type": "application/json"}, data=json.dumps(payload))
        if r.status_code != 200:
            if self.debug:
                print(f"[gql-debug] HTTP {r.status_code}: {truncate_text(r.text, 160)}")
            raise FetchError(f"API request failed: HTTP {r.status_code}")
        try:
            js = r.json()
        except ValueError as e:
            raise FetchError(f"Invalid JSON from API: {e}") from e
        if not isinstance(js, dict):
            raise FetchError("Unexpected API response shape")
        if js.get("errors"):
            if self.debug:
                print("[gql-debug] Errors:", json.dumps(js["errors"])[:400])
            first = js["errors"][0]
            msg = first.get("message") if isinstance(first, dict) else str(first)
            raise FetchError(f"API error: {msg}")
        return js.get("data") or {}

    # --- Assets ---
    def get_bytes(self, path_or_url: str) -> Tuple[bytes, str]:
        """GET binary content. Returns (body, content type without parameters)."""
        r = self.request("GET", path_or_url)
        if r.status_code != 200:
            raise FetchError(f"GET {path_or_url} failed: HTTP {r.status_code}")
        ctype = (r.headers.get("Content-Type") or "").split(";")[0].strip().lower()
        return r.content, ctype
