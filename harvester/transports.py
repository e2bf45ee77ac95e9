from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass

import requests
from curl_cffi import requests as curl_requests
from curl_cffi.requests.exceptions import (
    ConnectionError as CurlConnectionError,
    RequestException as CurlRequestException,
    SSLError as CurlSSLError,
    Timeout as CurlTimeout,
)

from .errors import FetchError, FetchKind, TransientNetworkError

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/109.0.0.0 Safari/537.36"
)
DEFAULT_TIMEOUT = 20


@dataclass(frozen=True)
class Response:
    status_code: int
    body: str


class Transport(ABC):
    """One raw HTTP GET. Library errors are mapped onto the harvester taxonomy:
    network-level trouble becomes TransientNetworkError, the rest a permanent
    FetchError."""

    @abstractmethod
    def get(self, url: str) -> Response:
        ...


class RequestsTransport(Transport):
    """GET through ``requests`` with one Session per worker thread."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, user_agent: str = DEFAULT_USER_AGENT) -> None:
        self._timeout = timeout
        self._headers = {"User-Agent": user_agent}
        self._local = threading.local()

    def _session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            session.headers.update(self._headers)
            self._local.session = session
        return session

    def get(self, url: str) -> Response:
        try:
            resp = self._session().get(url, timeout=self._timeout)
        except (requests.exceptions.InvalidURL, requests.exceptions.MissingSchema, requests.exceptions.InvalidSchema) as exc:
            raise FetchError(url, f"malformed url: {exc}", kind=FetchKind.PERMANENT) from exc
        except (requests.ConnectionError, requests.Timeout, requests.exceptions.ChunkedEncodingError) as exc:
            raise TransientNetworkError(url, f"{type(exc).__name__}: {exc}") from exc
        except requests.RequestException as exc:
            raise FetchError(url, f"{type(exc).__name__}: {exc}", kind=FetchKind.PERMANENT) from exc
        return Response(status_code=resp.status_code, body=resp.text or "")


class CurlTransport(Transport):
    """GET through ``curl_cffi`` impersonating a desktop Chrome TLS fingerprint."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, impersonate: str = "chrome120") -> None:
        self._timeout = timeout
        self._impersonate = impersonate

    def get(self, url: str) -> Response:
        session = curl_requests.Session()
        try:
            resp = session.get(url, impersonate=self._impersonate, timeout=self._timeout)
        except (CurlConnectionError, CurlTimeout, CurlSSLError) as exc:
            raise TransientNetworkError(url, f"{type(exc).__name__}: {exc}") from exc
        except CurlRequestException as exc:
            raise FetchError(url, f"{type(exc).__name__}: {exc}", kind=FetchKind.PERMANENT) from exc
        finally:
            session.close()
        return Response(status_code=resp.status_code, body=resp.text or "")
