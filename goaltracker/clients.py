"""Process-wide remote clients and the reconciler, exposed as FastAPI dependencies.

The reconciler is shared so its per-repository locks hold across requests.
"""

from __future__ import annotations

from goaltracker.config import settings
from goaltracker.db import get_store
from goaltracker.kernel.reconciler import GitHubReconciler
from goaltracker.providers.books import GoogleBooksClient
from goaltracker.providers.github import GitHubClient
from goaltracker.providers.text_generation import AnthropicClient

_github: GitHubClient | None = None
_books: GoogleBooksClient | None = None
_text: AnthropicClient | None = None
_reconciler: GitHubReconciler | None = None


def get_github_client() -> GitHubClient:
    global _github
    if _github is None:
        _github = GitHubClient()
    return _github


def get_book_client() -> GoogleBooksClient:
    global _books
    if _books is None:
        _books = GoogleBooksClient()
    return _books


def get_text_generator() -> AnthropicClient | None:
    """None when no Anthropic key is configured; suggestions then report unavailable."""
    global _text
    if settings.anthropic_api_key is None:
        return None
    if _text is None:
        _text = AnthropicClient()
    return _text


def get_reconciler() -> GitHubReconciler:
    global _reconciler
    if _reconciler is None:
        _reconciler = GitHubReconciler(get_store(), get_github_client())
    return _reconciler


async def close_clients() -> None:
    global _github, _books, _text, _reconciler
    for client in (_github, _books, _text):
        if client is not None:
            await client.aclose()
    _github = _books = _text = _reconciler = None
