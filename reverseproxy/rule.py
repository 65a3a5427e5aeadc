from dataclasses import dataclass
from typing import Literal
from urllib.parse import unquote

from fastapi import Request
from pydantic import BaseModel, ConfigDict
from starlette.datastructures import URL

from .pathmatch import clean_path, escape_path, is_abs, join_path, path_contains, relative_path


@dataclass(frozen=True)
class ProxyRequest:
    """
    Read-only view of an incoming request: the Host it was sent to, its
    decoded path and its URL. url carries the path still percent-encoded, so
    an encoded '?' or '#' in the path never turns into a query or fragment.
    """
    host: str
    path: str
    url: URL

    @classmethod
    def from_request(cls, request: Request) -> 'ProxyRequest':
        scope = request.scope
        path = scope['path']
        raw_path = scope.get('raw_path')
        # some servers leave the query on raw_path
        escaped = raw_path.split(b'?', 1)[0].decode('latin-1') if raw_path else escape_path(path)
        url = request.url.replace(
            path=escaped,
            query=scope.get('query_string', b'').decode('latin-1'),
            fragment='',
        )
        host = request.headers.get('host') or url.netloc
        return cls(host=host, path=path, url=url)

    @classmethod
    def from_url(cls, url: str, host: str | None = None) -> 'ProxyRequest':
        parsed = URL(url)
        return cls(
            host=parsed.netloc if host is None else host,
            path=unquote(parsed.path),
            url=parsed,
        )


class Rule(BaseModel):
    """
    Forwarding rule: requests for source_host whose path sits under
    source_path are sent to dest_scheme://dest_host, with the part of the
    path below source_path appended to dest_path.

    A source_path that is not absolute (e.g. "" or "*") matches every path on
    the host and leaves the path untouched.
    """
    model_config = ConfigDict(frozen=True)

    source_host: str = ''
    source_path: str = ''
    dest_host: str = ''
    dest_path: str = ''
    dest_scheme: Literal['http', 'https'] = 'http'

    case_sensitive_host: bool = False
    case_sensitive_path: bool = False
    # "/a/../b" is routed as "/b" when set
    clean_request_path: bool = False

    def matches_request(self, request: ProxyRequest) -> bool:
        if self.case_sensitive_host:
            if self.source_host != request.host:
                return False
        elif self.source_host.casefold() != request.host.casefold():
            return False

        req_path = self._request_path(request)
        if not is_abs(self.source_path):
            return True
        if not is_abs(req_path):
            return False
        return path_contains(self.source_path, req_path, self.case_sensitive_path)

    def destination_url(self, request: ProxyRequest) -> URL:
        """
        URL the request is forwarded to. Query string and fragment are kept.
        Only call this for a request matches_request() accepted.
        """
        url = request.url.replace(scheme=self.dest_scheme, netloc=self.dest_host)
        if is_abs(self.source_path):
            rel = relative_path(self.source_path, self._request_path(request), self.case_sensitive_path)
            if not self.dest_path:
                path = '/' + rel
            else:
                path = join_path(self.dest_path, rel)
            url = url.replace(path=escape_path(path))

        return url

    def _request_path(self, request: ProxyRequest) -> str:
        if self.clean_request_path:
            return clean_path(request.path)
        return request.path
