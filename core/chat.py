"""
Conversational context router.

Two independent chat contexts share one router:

    video     — questions about the analysed video (AnalysisRecord)
    research  — questions about a deep-research topic (ResearchResult)

Each context owns an append-only message list and moves through

    uninitialized → greeted → awaiting-response → idle → awaiting-response → ...

A question is appended before the model call; the call always ends with
exactly one model-authored message, either the answer or an error line.
Only one question may be in flight per context. Switching the active
context never resets either history.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional

from core.errors import ContextBusyError, InputValidationError
from core.models import AnalysisRecord, ChatMessage, ResearchResult

if TYPE_CHECKING:
    from core.analyzer import Analyzer

logger = logging.getLogger(__name__)

CONTEXT_UNAVAILABLE = "Context unavailable."
ERROR_REPLY = "Error generating response."


class ChatContext(str, Enum):
    VIDEO = "video"
    RESEARCH = "research"


class ContextState(str, Enum):
    UNINITIALIZED = "uninitialized"
    GREETED = "greeted"
    AWAITING_RESPONSE = "awaiting-response"
    IDLE = "idle"


@dataclass
class Conversation:
    """Message history and state of a single context."""

    messages: list[ChatMessage] = field(default_factory=list)
    state: ContextState = ContextState.UNINITIALIZED
    #: Set only when the greeting is appended; a question asked before any
    #: data arrived does not count.
    greeted: bool = False

    def greet(self, text: str) -> None:
        if self.greeted:
            return
        self.messages.append(_message("model", text))
        self.greeted = True
        if self.state == ContextState.UNINITIALIZED:
            self.state = ContextState.GREETED


def _now_ms() -> float:
    return time.time() * 1000


def _message(role: str, content: str) -> ChatMessage:
    return ChatMessage(role=role, content=content, timestamp=_now_ms())


class ConversationRouter:
    """Routes questions to the video or research context."""

    def __init__(self, analyzer: Analyzer) -> None:
        self.analyzer = analyzer
        self.record: Optional[AnalysisRecord] = None
        self.research: Optional[ResearchResult] = None
        self.active = ChatContext.VIDEO
        self._conversations = {ctx: Conversation() for ctx in ChatContext}
        self._lock = threading.Lock()

    # ── State ──────────────────────────────────────────────────────────────

    def conversation(self, context: ChatContext | str) -> Conversation:
        return self._conversations[ChatContext(context)]

    def messages(self, context: ChatContext | str) -> list[ChatMessage]:
        with self._lock:
            return list(self.conversation(context).messages)

    def state(self, context: ChatContext | str) -> ContextState:
        return self.conversation(context).state

    def attach_record(self, record: AnalysisRecord) -> None:
        """Make *record* the video context; greets once per router."""
        with self._lock:
            self.record = record
            self._conversations[ChatContext.VIDEO].greet(
                f'Hi! I\'m ready to answer questions about the video "{record.title}".'
            )

    def attach_research(self, research: ResearchResult) -> None:
        """Make *research* the research context; greets once per router."""
        with self._lock:
            self.research = research
            self._conversations[ChatContext.RESEARCH].greet(
                f'I\'ve analyzed the topic "{research.topic}". '
                "What specific details would you like to discuss?"
            )

    def force_context(self, context: ChatContext | str) -> ChatContext:
        """Switch the active context without touching either history."""
        self.active = ChatContext(context)
        return self.active

    # ── Suggestions ────────────────────────────────────────────────────────

    def suggested_questions(self, context: ChatContext | str | None = None) -> list[str]:
        context = ChatContext(context or self.active)
        if context == ChatContext.VIDEO and self.record:
            questions = ["Summarize the key points."]
            themes = self.record.themes
            if len(themes) > 0:
                questions.append(f"Tell me more about {themes[0].topic}.")
            if len(themes) > 1:
                questions.append(f"What was said about {themes[1].topic}?")
            return questions[:3]
        if context == ChatContext.RESEARCH and self.research:
            questions = ["Explain the history."]
            if self.research.key_concepts:
                questions.append(f"What is {self.research.key_concepts[0]}?")
            questions.append("Why is this important?")
            return questions[:3]
        return []

    # ── Asking ─────────────────────────────────────────────────────────────

    def ask(self, question: str, context: ChatContext | str | None = None) -> ChatMessage:
        """Append *question* to a context and return the model's reply message.

        Raises:
            InputValidationError: If *question* is blank.
            ContextBusyError: If that context already has a question in flight.
        """
        question = (question or "").strip()
        if not question:
            raise InputValidationError("Question must not be empty.")
        context = ChatContext(context or self.active)

        with self._lock:
            convo = self._conversations[context]
            if convo.state == ContextState.AWAITING_RESPONSE:
                raise ContextBusyError(f"A question is already pending in the {context.value} chat.")
            history = list(convo.messages)
            convo.messages.append(_message("user", question))
            convo.state = ContextState.AWAITING_RESPONSE
            record, research = self.record, self.research

        try:
            if context == ChatContext.VIDEO and record is not None:
                reply = self.analyzer.ask_question(question, record, history)
            elif context == ChatContext.RESEARCH and research is not None:
                reply = self.analyzer.ask_research_question(question, research, history)
            else:
                reply = CONTEXT_UNAVAILABLE
        except Exception:
            logger.exception("Chat answer failed in context=%s", context.value)
            reply = ERROR_REPLY

        answer = _message("model", reply)
        with self._lock:
            convo.messages.append(answer)
            convo.state = ContextState.IDLE
        return answer
