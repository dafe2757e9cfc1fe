import json

import pytest
import requests

from guru_api import Download


def make_response(status=200, json_body=..., content=b"", headers=None,
                  reason=None, url="https://api.getguru.com/"):
    r = requests.Response()
    r.status_code = status
    r.reason      = reason or ("OK" if status < 400 else "Error")
    r.url         = url
    r.encoding    = "utf-8"
    r._content    = json.dumps(json_body).encode() if json_body is not ... else content
    r.headers.update(headers or {})
    return r


class FakeSession:
    """
    Stand-in for requests.Session: answers GETs from a {url: response}
    table. A value that is an exception instance is raised instead.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls: list[tuple[str, dict]] = []
        self.timeouts: list = []

    def get(self, url, headers=None, timeout=None, **kwargs):
        self.calls.append((url, dict(headers or {})))
        self.timeouts.append(timeout)
        if url not in self.routes:
            return make_response(404, json_body={"message": "not found"}, url=url)
        answer = self.routes[url]
        if isinstance(answer, Exception):
            raise answer
        return answer

    def urls(self) -> list[str]:
        return [u for u, _ in self.calls]


class FakeDownloader:
    """download(url, headers) stub; answers from a table, None otherwise."""

    def __init__(self, answers=None):
        self.answers = dict(answers or {})
        self.calls: list[tuple[str, dict]] = []

    def __call__(self, url, headers):
        self.calls.append((url, dict(headers or {})))
        answer = self.answers.get(url)
        if isinstance(answer, Exception):
            raise answer
        return answer


PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


@pytest.fixture
def png_download():
    return Download(content=PNG, content_type="image/png")


@pytest.fixture
def auth():
    return {"Authorization": "Basic dGVzdDp0ZXN0", "Accept": "application/json"}
