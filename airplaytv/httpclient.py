"""A small HTTP client that carries a fixed set of request headers."""

from __future__ import annotations

from typing import Any, Mapping

import requests

DEFAULT_TIMEOUT = 15.0
DEFAULT_MAX_SIZE = 1024 * 1024
_READ_CHUNK = 64 * 1024


class HttpError(Exception):
    """A request failed or the server answered with an unusable response."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        headers: Mapping[str, str] | None = None,
        body: bytes | None = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.headers = headers
        self.body = body


def _content_length(headers: Mapping[str, str]) -> int:
    try:
        return int(str(headers.get("Content-Length", "")).strip())
    except ValueError:
        return 0


def _status_message(resp: requests.Response) -> str:
    if resp.reason:
        return f"{resp.status_code} {resp.reason}"
    return f"上游服务器返回错误({resp.status_code})"


class HttpClient:
    """Sends requests with the stored headers; TLS verification is off by default."""

    def __init__(
        self,
        headers: Mapping[str, str] | None = None,
        *,
        skip_verify: bool = True,
        proxy_url: str = "",
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.headers: dict[str, str] = dict(headers or {})
        self.skip_verify = skip_verify
        self.proxy_url = proxy_url
        self.timeout = timeout

    def add_header(self, key: str, value: str) -> None:
        self.headers[key] = value

    def _send(self, method: str, url: str, body: str | bytes | None = None, stream: bool = False) -> requests.Response:
        data: Any = body.encode("utf-8") if isinstance(body, str) else body
        proxies = {"http": self.proxy_url, "https": self.proxy_url} if self.proxy_url else None
        try:
            return requests.request(
                method,
                url,
                data=data,
                headers=dict(self.headers),
                timeout=self.timeout,
                verify=not self.skip_verify,
                proxies=proxies,
                stream=stream,
                allow_redirects=True,
            )
        except requests.RequestException as exc:
            raise HttpError(str(exc)) from exc

    @staticmethod
    def _body(resp: requests.Response) -> bytes:
        try:
            return resp.content
        except requests.RequestException as exc:
            raise HttpError(str(exc), status=resp.status_code, headers=resp.headers) from exc

    def get(self, url: str) -> bytes:
        """GET url and return the decoded body, whatever the status code."""
        return self._body(self._send("GET", url))

    def post(self, url: str, body: str | bytes) -> bytes:
        """POST a raw body and return the decoded response body."""
        return self._body(self._send("POST", url, body))

    def get_response(
        self, url: str, read_size: int = 0, max_size: int | None = None
    ) -> tuple[Mapping[str, str], bytes]:
        """GET url and return its headers and at most read_size bytes of body.

        Without max_size, a declared length over 1 MiB is refused; with it, the
        read is clamped to max_size. A status other than 200 raises HttpError.
        """
        limit = DEFAULT_MAX_SIZE if max_size is None else max_size
        resp = self._send("GET", url, stream=True)
        with resp:
            length = _content_length(resp.headers)
            if length > limit:
                if max_size is None:
                    raise HttpError(
                        f"请求内容太大({resp.headers.get('Content-Type', '')})",
                        status=resp.status_code,
                        headers=resp.headers,
                    )
                length = limit
            if length == 0:
                length = limit
            amount = read_size if read_size else length
            body = self._read(resp, amount)
            if resp.status_code != 200:
                raise HttpError(_status_message(resp), status=resp.status_code, headers=resp.headers, body=body)
            return resp.headers, body

    @staticmethod
    def _read(resp: requests.Response, amount: int) -> bytes:
        if amount <= 0:
            return b""
        collected = bytearray()
        try:
            for chunk in resp.iter_content(chunk_size=min(amount, _READ_CHUNK)):
                collected.extend(chunk)
                if len(collected) >= amount:
                    break
        except requests.RequestException as exc:
            raise HttpError(str(exc), status=resp.status_code, headers=resp.headers) from exc
        return bytes(collected[:amount])

    def post_response(self, url: str, body: str | bytes) -> tuple[Mapping[str, str], bytes]:
        """POST a raw body and return the response headers and decoded body."""
        resp = self._send("POST", url, body)
        return resp.headers, self._body(resp)

    def head(self, url: str) -> Mapping[str, str]:
        """Send a HEAD request and return the response headers."""
        resp = self._send("HEAD", url)
        resp.close()
        return resp.headers

    def clone(self) -> "HttpClient":
        """A new client with a copy of this client's headers and default settings."""
        return HttpClient(self.headers)