"""Preview resolution for articles that arrive without a body.

Layers, tried strictly in order with no retries inside a layer:

1. Primary: a text-extraction proxy fetches the article URL and returns
   plain text, which is cleaned and screened for bot-challenge pages.
2. Discussion fallback: the top comments of the submission's thread.

Each layer is an explicit state value. The transition out of a state is a
pure function of the HTTP outcome, so every transition can be exercised
without a network. ``PreviewResolver.resolve`` only performs the I/O and
feeds the outcomes through those functions.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, TypeVar, Union

import httpx

from livenews.core.summarizer import summarize
from livenews.providers.content_types import Article
from livenews.providers.reddit import REDDIT_BASE_URL, discussion_url, extract_comment_bodies

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PROXY_HOST = "r.jina.ai"
DEFAULT_DEADLINE_MS = 6000
PREVIEW_MAX_LENGTH = 320

UNAVAILABLE_MESSAGE = "Preview unavailable right now. Open source link for full details."
TRANSIENT_MESSAGE = "Could not load preview right now. Please try Refresh preview."

# Phrases that mark a challenge, block or proxy error page instead of content
BLOCKED_CONTENT_PATTERNS = (
    r"just a moment",
    r"checking your browser",
    r"verify (?:that )?you are (?:a )?human",
    r"are you a robot",
    r"captcha",
    r"attention required",
    r"enable javascript and cookies",
    r"access denied",
    r"\bforbidden\b",
    r"error \d{3}",
    r"proxy error",
    r"too many requests",
)
_BLOCKED_RE = re.compile("|".join(BLOCKED_CONTENT_PATTERNS), re.IGNORECASE)

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE)
_PROXY_LABEL_RE = re.compile(r"^[ \t]*(?:Title|URL Source|Markdown Content):[ \t]*", re.IGNORECASE | re.MULTILINE)
_MULTI_NEWLINE_RE = re.compile(r"\n{2,}")
_WHITESPACE_RE = re.compile(r"\s+")


class PreviewOrigin(str, Enum):
    """Which layer produced the preview text."""

    PRIMARY_SOURCE = "primary-source"
    DISCUSSION_FALLBACK = "discussion-fallback"
    NONE = "none"


class PreviewErrorType(str, Enum):
    """Classification of preview failures."""

    CONTENT_UNAVAILABLE = "content_unavailable"  # Both layers came back empty
    TRANSIENT_FAILURE = "transient_failure"  # Unexpected transport/parse error
    CANCELLED = "cancelled"  # Deadline or caller abort


@dataclass
class PreviewResult:
    """Outcome of one resolution attempt. Never cached."""

    text: str | None = None
    origin: PreviewOrigin = PreviewOrigin.NONE
    error: str | None = None
    error_type: PreviewErrorType | None = None

    @property
    def ok(self) -> bool:
        return self.text is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "origin": self.origin.value,
            "error": self.error,
            "error_type": self.error_type.value if self.error_type else None,
        }


# ---------------------------------------------------------------------------
# States
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PrimaryFetch:
    pass


@dataclass(frozen=True)
class DiscussionFallback:
    pass


@dataclass(frozen=True)
class Resolved:
    origin: PreviewOrigin
    raw_text: str


@dataclass(frozen=True)
class Failed:
    message: str
    error_type: PreviewErrorType


PreviewState = Union[PrimaryFetch, DiscussionFallback, Resolved, Failed]


def is_terminal(state: PreviewState) -> bool:
    return isinstance(state, (Resolved, Failed))


# ---------------------------------------------------------------------------
# Pure helpers and transitions
# ---------------------------------------------------------------------------


def proxy_url(article_url: str, proxy_host: str = DEFAULT_PROXY_HOST) -> str:
    """Text-extraction proxy URL for an article, e.g. https://r.jina.ai/http://example.com/a."""
    stripped = _SCHEME_RE.sub("", article_url.strip())
    return f"https://{proxy_host}/http://{stripped}"


def clean_proxy_text(raw: str) -> str:
    """Drop proxy boilerplate labels and flatten whitespace."""
    text = raw.replace("\r\n", "\n").replace("\r", "\n")
    text = _PROXY_LABEL_RE.sub("", text)
    text = _MULTI_NEWLINE_RE.sub("\n", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def is_blocked_content(text: str) -> bool:
    """Whether text looks like a bot challenge, block page or proxy error."""
    return bool(_BLOCKED_RE.search(text))


def _is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


def after_primary(status_code: int, body: str) -> PreviewState:
    if not _is_success(status_code):
        return DiscussionFallback()
    cleaned = clean_proxy_text(body)
    if not cleaned or is_blocked_content(cleaned):
        return DiscussionFallback()
    return Resolved(PreviewOrigin.PRIMARY_SOURCE, cleaned)


def after_discussion(status_code: int, payload: Any) -> PreviewState:
    if not _is_success(status_code):
        return Failed(UNAVAILABLE_MESSAGE, PreviewErrorType.CONTENT_UNAVAILABLE)
    bodies = extract_comment_bodies(payload)
    if not bodies:
        return Failed(UNAVAILABLE_MESSAGE, PreviewErrorType.CONTENT_UNAVAILABLE)
    return Resolved(PreviewOrigin.DISCUSSION_FALLBACK, " ".join(bodies))


def after_error(state: PreviewState, exc: BaseException) -> PreviewState:
    """Transition taken when a layer raised instead of answering.

    Cancellation is terminal. Otherwise the primary layer gets one recovery
    attempt through the discussion layer.
    """
    if isinstance(exc, PreviewCancelled):
        return Failed(TRANSIENT_MESSAGE, PreviewErrorType.CANCELLED)
    if isinstance(state, PrimaryFetch):
        return DiscussionFallback()
    return Failed(TRANSIENT_MESSAGE, PreviewErrorType.TRANSIENT_FAILURE)


def finish(title: str, state: PreviewState) -> PreviewResult:
    if isinstance(state, Resolved):
        return PreviewResult(
            text=summarize(title, state.raw_text, PREVIEW_MAX_LENGTH),
            origin=state.origin,
        )
    if isinstance(state, Failed):
        return PreviewResult(error=state.message, error_type=state.error_type)
    raise ValueError(f"Cannot finish from non-terminal state {state!r}")


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


class PreviewCancelled(Exception):
    """Raised at a suspension point once the token is cancelled."""


class CancelToken:
    """Cooperative cancellation signal shared by one resolution.

    Cancelling a token cancels every child derived from it, never the parent.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._children: list[CancelToken] = []
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()
        for child in list(self._children):
            child.cancel(reason)

    def child(self) -> "CancelToken":
        token = CancelToken()
        if self.cancelled:
            token.cancel(self.reason or "cancelled")
        else:
            self._children.append(token)
        return token

    def detach(self, child: "CancelToken") -> None:
        """Stop propagating cancellation to ``child``."""
        if child in self._children:
            self._children.remove(child)

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first.

        Raises:
            PreviewCancelled: If the token was or becomes cancelled before
                the awaitable completes. The awaitable is cancelled.
        """
        if self.cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise PreviewCancelled(self.reason)
        call = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait({call, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            call.cancel()
            raise
        finally:
            waiter.cancel()

        if call in done:
            return call.result()

        call.cancel()
        await asyncio.gather(call, return_exceptions=True)
        raise PreviewCancelled(self.reason)


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class PreviewResolver:
    """Fetches substitute detail text for bodiless articles.

    One resolver can serve many concurrent resolutions: each call owns its
    token and deadline timer, and the shared httpx client is safe to use
    concurrently.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        proxy_host: str = DEFAULT_PROXY_HOST,
        discussion_base_url: str = REDDIT_BASE_URL,
        deadline_ms: int = DEFAULT_DEADLINE_MS,
    ) -> None:
        self._client = client
        self._proxy_host = proxy_host
        self._discussion_base_url = discussion_base_url
        self._deadline_ms = deadline_ms

    async def resolve(
        self,
        article: Article,
        deadline_ms: int | None = None,
        cancel: CancelToken | None = None,
    ) -> PreviewResult:
        """Run the layered lookup for ``article``. Never raises.

        Args:
            article: Article to preview; its body is not consulted.
            deadline_ms: Budget after which the resolution is cancelled.
            cancel: Optional caller token; cancelling it aborts this call.

        Returns:
            PreviewResult with text and origin, or an error message.
        """
        token = cancel.child() if cancel is not None else CancelToken()
        budget = self._deadline_ms if deadline_ms is None else deadline_ms

        loop = asyncio.get_running_loop()
        timer = loop.call_later(budget / 1000, token.cancel, "deadline exceeded")
        try:
            state = await self._run(article, token)
        finally:
            timer.cancel()
            if cancel is not None:
                cancel.detach(token)

        if isinstance(state, Failed):
            logger.info(f"Preview for {article.id} failed ({state.error_type.value})")
        return finish(article.title, state)

    async def _run(self, article: Article, token: CancelToken) -> PreviewState:
        state: PreviewState = PrimaryFetch()
        while not is_terminal(state):
            try:
                state = await self._step(article, state, token)
            except PreviewCancelled as e:
                logger.warning(f"Preview for {article.id} cancelled: {e}")
                state = after_error(state, e)
            except Exception as e:
                logger.warning(
                    f"Preview layer {type(state).__name__} raised for {article.id}: "
                    f"{type(e).__name__}: {e}"
                )
                state = after_error(state, e)
        return state

    async def _step(self, article: Article, state: PreviewState, token: CancelToken) -> PreviewState:
        if isinstance(state, PrimaryFetch):
            resp = await self._get(proxy_url(article.url, self._proxy_host), token, accept="text/plain")
            next_state = after_primary(resp.status_code, resp.text)
            if isinstance(next_state, DiscussionFallback):
                logger.debug(f"Primary layer rejected {article.id} (HTTP {resp.status_code})")
            return next_state

        if isinstance(state, DiscussionFallback):
            url = discussion_url(article.id, self._discussion_base_url)
            resp = await self._get(url, token, accept="application/json")
            payload = resp.json() if resp.is_success else None
            return after_discussion(resp.status_code, payload)

        raise ValueError(f"No transition from {state!r}")

    async def _get(self, url: str, token: CancelToken, *, accept: str) -> httpx.Response:
        """GET with the token honored at send and at body read."""
        request = self._client.build_request("GET", url, headers={"Accept": accept})
        resp = await token.guard(self._client.send(request, stream=True))
        try:
            await token.guard(resp.aread())
        finally:
            await resp.aclose()
        return resp


@dataclass
class ArticleDetail:
    """Detail text for an article plus the preview it came from, if any."""

    text: str
    preview: PreviewResult | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "preview": self.preview.to_dict() if self.preview else None,
        }


async def resolve_detail(
    article: Article,
    resolver: PreviewResolver,
    deadline_ms: int | None = None,
    cancel: CancelToken | None = None,
) -> ArticleDetail:
    """Detail text for an article, consulting the resolver only without a body."""
    if article.has_body:
        return ArticleDetail(text=article.body)

    preview = await resolver.resolve(article, deadline_ms=deadline_ms, cancel=cancel)
    return ArticleDetail(text=preview.text or preview.error or "", preview=preview)
