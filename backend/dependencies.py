"""
Component wiring for InsightSmith.

build_services() constructs every component explicitly from a config and a
lexicon; create_app() stores the result on app.state and routers reach it
through get_services(). Tests build their own isolated instances the same way.

Usage:
    from dependencies import build_services

    services = build_services(RuntimeConfig(), llm_client=None)
    result = await services.orchestrator.handle(ChatRequest(message="hello"))
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from config import RuntimeConfig
from lexicon_loader import Lexicon, load_lexicon
from routers.chat_orchestration.composer import ResponseComposer
from routers.chat_orchestration.handlers import create_action_classifier
from routers.chat_orchestration.mode_detector import ModeDetector
from routers.chat_orchestration.orchestrator import ChatOrchestrator
from services.llm_client import LLMClient
from services.session_store import SessionStore
from services.voice import VoiceService
from services.web_search import WebSearchService

logger = logging.getLogger(__name__)

_UNSET = object()


@dataclass
class AppServices:
    config: RuntimeConfig
    lexicon: Lexicon
    store: SessionStore
    detector: ModeDetector
    search: WebSearchService
    composer: ResponseComposer
    voice: VoiceService
    orchestrator: ChatOrchestrator
    llm: Optional[LLMClient] = None


def build_services(
    config: RuntimeConfig,
    lexicon: Optional[Lexicon] = None,
    llm_client=_UNSET,
    store: Optional[SessionStore] = None,
    search: Optional[WebSearchService] = None,
) -> AppServices:
    """Construct all components.

    Args:
        config: Runtime config
        lexicon: Lexicon (loaded from config.lexicon_path when omitted)
        llm_client: LLM client; omitted builds one when the provider is
            configured, None disables LLM composition and voice
        store: Session store (built from config when omitted)
        search: Web search service (built from config when omitted)
    """
    lexicon = lexicon or load_lexicon(config.lexicon_path)

    if llm_client is _UNSET:
        llm_client = LLMClient.from_config(config) if config.llm_configured else None

    store = store or SessionStore(
        ttl_seconds=config.session_ttl_s,
        lock_stripes=config.session_lock_stripes,
    )
    detector = ModeDetector(lexicon)
    search = search or WebSearchService(config, lexicon)
    composer = ResponseComposer(lexicon, config, search=search, llm=llm_client)
    voice = VoiceService(config, llm_client)
    orchestrator = ChatOrchestrator(
        store=store,
        detector=detector,
        composer=composer,
        actions=create_action_classifier(),
        lexicon=lexicon,
        config=config,
    )

    logger.info(
        f"Services ready (llm={'on' if llm_client else 'off'}, "
        f"search={'on' if config.searxng_enabled else 'off'}, ttl={config.session_ttl_s}s)"
    )
    return AppServices(
        config=config,
        lexicon=lexicon,
        store=store,
        detector=detector,
        search=search,
        composer=composer,
        voice=voice,
        orchestrator=orchestrator,
        llm=llm_client,
    )


def get_services(request: Request) -> AppServices:
    """FastAPI dependency returning the app's components."""
    return request.app.state.services
