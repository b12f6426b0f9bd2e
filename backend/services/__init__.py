"""
InsightSmith Services - Shared infrastructure services.

- session_store: Thread-safe in-memory session store with TTL sweep
- llm_client: OpenAI SDK wrapper (chat, transcription, speech)
- json_repair: JSON extraction/repair for LLM replies
- web_search: SearXNG search and summary
- voice: Speech-to-text / text-to-speech with fallbacks
"""
