"""
Shared pytest fixtures for InsightSmith tests.

Every fixture builds isolated instances: no test touches the module-level
runtime_config or a real provider.
"""

from datetime import datetime, timedelta, timezone

import pytest

from config import RuntimeConfig
from dependencies import build_services
from lexicon_loader import load_lexicon
from routers.chat_orchestration.composer import ResponseComposer
from services.session_store import SessionStore
from services.web_search import SearchResponse, SearchResult


class FakeClock:
    """Manually advanced UTC clock for SessionStore tests."""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2025, 1, 15, 9, 30, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class StubSearch:
    """WebSearchService stand-in with canned results and a call log."""

    def __init__(self, results=None, triggered=True):
        self.results = results if results is not None else [
            SearchResult(title="AI市場動向", url="https://example.com/a", snippet="生成AIの導入が加速"),
            SearchResult(title="業界レポート", url="https://example.com/b", snippet="中小企業の活用事例"),
        ]
        self.triggered = triggered
        self.queries = []

    def should_search(self, text: str) -> bool:
        return self.triggered

    def search(self, query: str, max_results=None) -> SearchResponse:
        self.queries.append(query)
        return SearchResponse(
            query=query,
            results=list(self.results),
            timestamp=datetime(2025, 3, 7, tzinfo=timezone.utc),
        )

    def summarize(self, response: SearchResponse) -> str:
        if not response.results:
            return "最新の情報を取得できませんでした。"
        return "\n".join(f"{i}. {r.title}: {r.snippet}" for i, r in enumerate(response.results, start=1))


def make_config(**overrides) -> RuntimeConfig:
    """Config with every provider off, independent of the environment."""
    values = dict(
        openai_api_key="",
        llm_base_url="",
        llm_enabled=False,
        searxng_enabled=False,
        session_ttl_s=3600,
        session_sweep_interval_s=300,
        max_message_length=4000,
    )
    values.update(overrides)
    return RuntimeConfig(**values)


@pytest.fixture(scope="session")
def lexicon():
    """The bundled lexicon (read once per test run)."""
    return load_lexicon()


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return SessionStore(ttl_seconds=3600, lock_stripes=4, clock=clock)


@pytest.fixture
def composer(lexicon, config):
    return ResponseComposer(lexicon, config)


@pytest.fixture
def services(lexicon, config, store):
    return build_services(config, lexicon=lexicon, llm_client=None, store=store)
