"""
http.py – cached, rate-limited JSON client for the public APIs we hit.

Every GET/POST is keyed by an md5 of (method, base URL, endpoint, params)
and stored as JSON under the cache directory for one week, so re-running a
state does not hammer Wikipedia or Open-Elevation again.
"""
from __future__ import annotations

import hashlib
import json
import logging
import tempfile
import time
from pathlib import Path
from typing import Any, Dict, Optional

import requests

log = logging.getLogger("scenic.http")


class ApiError(RuntimeError):
    """Raised when a remote API call fails or returns something unusable."""


class HttpClient:
    def __init__(
        self,
        base_url: str,
        user_agent: str,
        cache_dir: Path | str,
        rate_limit_per_second: int = 1,
        timeout: int = 30,
        ttl_seconds: int = 604_800,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.cache_dir = Path(cache_dir)
        self.timeout = timeout
        self.ttl_seconds = ttl_seconds
        self._min_interval = 1.0 / max(1, rate_limit_per_second)
        self._last_request = 0.0

        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": user_agent,
            "Accept": "application/json",
        })

    # ------------------------------------------------------------------ #
    def get(self, endpoint: str = "", params: Optional[Dict[str, Any]] = None) -> Any:
        """GET `endpoint` with query `params`, served from cache when fresh."""
        params = params or {}
        return self._cached("GET", endpoint, params, lambda: self._request("GET", endpoint, params=params))

    def post(self, endpoint: str = "", json_body: Optional[Dict[str, Any]] = None) -> Any:
        """
        POST a JSON body.  Cached like GET: the lookups we POST are
        idempotent and re-running a target must not pay for them twice.
        """
        json_body = json_body or {}
        return self._cached("POST", endpoint, json_body, lambda: self._request("POST", endpoint, json=json_body))

    def download_file(self, url: str, save_path: Path | str) -> Path:
        """Download `url` to `save_path` unless the file is already there."""
        save_path = Path(save_path)
        if save_path.exists():
            log.debug("Download skipped, %s exists", save_path.name)
            return save_path

        save_path.parent.mkdir(parents=True, exist_ok=True)
        self._throttle()
        # stream into a temp file beside the target; only a finished body is renamed into place
        tmp = tempfile.NamedTemporaryFile(delete=False, dir=save_path.parent, suffix=".part")
        try:
            with tmp, self.session.get(
                url,
                stream=True,
                timeout=self.timeout,
                headers={"Accept": "image/*, application/octet-stream"},
            ) as r:
                r.raise_for_status()
                for chunk in r.iter_content(chunk_size=1 << 16):
                    tmp.write(chunk)
            Path(tmp.name).rename(save_path)
        except (requests.RequestException, OSError) as exc:
            Path(tmp.name).unlink(missing_ok=True)
            raise ApiError(f"Download error in {type(self).__name__}: {exc}") from exc

        log.info("Downloaded %s", save_path.name)
        return save_path

    # ------------------------------------------------------------------ #
    def _url(self, endpoint: str) -> str:
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        if not endpoint:
            return self.base_url
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def _throttle(self) -> None:
        wait = self._min_interval - (time.monotonic() - self._last_request)
        if wait > 0:
            time.sleep(wait)
        self._last_request = time.monotonic()

    def _request(self, method: str, endpoint: str, **kwargs) -> Any:
        self._throttle()
        url = self._url(endpoint)
        try:
            r = self.session.request(method, url, timeout=self.timeout, **kwargs)
            r.raise_for_status()
            return r.json()
        except requests.RequestException as exc:
            raise ApiError(f"API error in {type(self).__name__} ({method} {url}): {exc}") from exc
        except ValueError as exc:
            raise ApiError(f"Invalid JSON from {url}: {exc}") from exc

    def cache_key(self, method: str, endpoint: str, params: Dict[str, Any]) -> str:
        m = hashlib.md5()
        m.update(method.lower().encode())
        m.update(self.base_url.encode())
        m.update(endpoint.encode())
        m.update(json.dumps(params, sort_keys=True, default=str).encode())
        return "http_" + m.hexdigest()

    def _cached(self, method: str, endpoint: str, params: Dict[str, Any], fetch) -> Any:
        cache_path = self.cache_dir / f"{self.cache_key(method, endpoint, params)}.json"

        if cache_path.exists() and time.time() - cache_path.stat().st_mtime < self.ttl_seconds:
            try:
                data = json.loads(cache_path.read_text(encoding="utf-8"))
                log.debug("HTTP cache hit (%s)", cache_path.name)
                return data
            except ValueError as exc:
                log.warning("HTTP cache entry unreadable (%s) – refetching", exc)

        data = fetch()
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        cache_path.write_text(json.dumps(data), encoding="utf-8")
        return data


class HttpClientFactory:
    """Builds HttpClient instances that share user agent, cache and timeout."""

    def __init__(self, user_agent: str, cache_dir: Path | str, timeout: int = 30, ttl_seconds: int = 604_800):
        self.user_agent = user_agent
        self.cache_dir = Path(cache_dir)
        self.timeout = timeout
        self.ttl_seconds = ttl_seconds

    def create(self, base_url: str, limit: int = 1) -> HttpClient:
        return HttpClient(
            base_url,
            self.user_agent,
            self.cache_dir,
            rate_limit_per_second=limit,
            timeout=self.timeout,
            ttl_seconds=self.ttl_seconds,
        )
