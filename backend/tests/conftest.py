from typing import Any, Callable

import httpx
import pytest

from minara_cms.db import ContentStore
from minara_cms.upstream import UpstreamClient


class FakePool:
    """Stands in for an asyncpg pool; records every statement.

    ``handler(method, sql, args)`` decides the result. Without one, reads
    return nothing and writes report one affected row.
    """

    def __init__(self, handler: Callable[[str, str, tuple], Any] | None = None):
        self.handler = handler
        self.calls: list[tuple[str, str, tuple]] = []
        self.closed = False

    def _answer(self, method: str, sql: str, args: tuple, default: Any) -> Any:
        self.calls.append((method, sql, args))
        if self.handler is None:
            return default
        result = self.handler(method, sql, args)
        if isinstance(result, Exception):
            raise result
        return default if result is None and method != "fetchrow" else result

    async def fetch(self, sql: str, *args):
        return self._answer("fetch", sql, args, [])

    async def fetchrow(self, sql: str, *args):
        return self._answer("fetchrow", sql, args, None)

    async def fetchval(self, sql: str, *args):
        return self._answer("fetchval", sql, args, 1)

    async def execute(self, sql: str, *args):
        return self._answer("execute", sql, args, "UPDATE 1")

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_pool():
    return FakePool()


@pytest.fixture
def store(fake_pool):
    return ContentStore(fake_pool)


def mock_upstream(routes: dict[str, Any]) -> UpstreamClient:
    """UpstreamClient answering from ``routes`` keyed by request path.

    A value may be JSON data, an ``httpx.Response`` or an exception
    instance to raise. Unknown paths answer 404.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        answer = routes.get(request.url.path)
        if answer is None:
            return httpx.Response(404, json={"error": "NOT_FOUND", "message": "Not found"})
        if isinstance(answer, Exception):
            raise answer
        if isinstance(answer, httpx.Response):
            return answer
        return httpx.Response(200, json=answer)

    return UpstreamClient("http://upstream.test/api", timeout=5.0, transport=httpx.MockTransport(handler))


@pytest.fixture
def al_fatiha_article():
    return {
        "id": 7,
        "title": "Al-Fatiha: An Introduction",
        "topic": "Quran",
        "writers": "Mufti Ahmed",
        "language": "english",
        "date": "2024-01-05",
        "isPublished": True,
        "englishTitle": "Al-Fatiha: An Introduction",
        "englishDescription": "<p>The opening chapter.</p><script>alert(1)</script>"
                              '<a href="#" onclick="steal()">more</a>',
        "urduTitle": "سورۃ الفاتحہ",
        "urduDescription": "<p>سورۃ الفاتحہ کا تعارف</p>",
        "views": 12,
    }


@pytest.fixture
def upstream_factory():
    return mock_upstream
