"""Request complexity detection.

A fast local heuristic deciding whether a chat request should go through
the guided workflow, and which clarification questions to ask first.
"""

from __future__ import annotations

import logging
import re

from caseflow.workflow.models import AnswerType, ClarificationQuestion, ComplexityAnalysis

logger = logging.getLogger(__name__)

COMPLEX_KEYWORDS: tuple[str, ...] = (
    "create",
    "build",
    "implement",
    "set up",
    "configure",
    "migrate",
    "refactor",
    "integrate",
    "automate",
    "analyze and",
    "multiple",
    "all",
    "every",
    "batch",
    "bulk",
    "across",
    "comprehensive",
    "complete",
    "full",
    "entire",
)

SIMPLE_KEYWORDS: tuple[str, ...] = (
    "what is",
    "how do",
    "show me",
    "list",
    "find",
    "get",
    "tell me",
    "explain",
    "help with",
    "status",
    "check",
)

LIST_MARKER_PATTERN = re.compile(r"(\d+\.|•|-|\*)\s")
SENTENCE_SPLIT_PATTERN = re.compile(r"[.!?]+")


def _suggest_questions(lowered: str, multi_part: bool) -> list[ClarificationQuestion]:
    questions: list[ClarificationQuestion] = []
    if multi_part:
        questions.append(
            ClarificationQuestion(
                id="priority",
                question="Which of these tasks should be prioritized first?",
                type=AnswerType.CHOICE,
                options=["First mentioned", "Most impactful", "Quickest wins first"],
                required=False,
            )
        )
    if "create" in lowered or "build" in lowered:
        questions.append(
            ClarificationQuestion(
                id="details",
                question="Do you have specific requirements or preferences for the implementation?",
                type=AnswerType.TEXT,
                required=True,
            )
        )
    if "all" in lowered or "every" in lowered or "bulk" in lowered:
        questions.append(
            ClarificationQuestion(
                id="scope",
                question="Should this apply to all items, or would you like to select specific ones?",
                type=AnswerType.CHOICE,
                options=["All items", "Let me select specific items"],
                required=True,
            )
        )
    return questions


def analyze_request(message: str) -> ComplexityAnalysis:
    """Classify a chat request as simple or complex.

    Short questions using lookup phrasing ("show me", "list", ...) are
    simple. Requests with action keywords, more than 30 words, more than
    two sentences or list markers are complex and get suggested questions.
    """
    lowered = message.lower()
    word_count = len(message.split())
    has_complex = any(keyword in lowered for keyword in COMPLEX_KEYWORDS)
    has_simple = any(keyword in lowered for keyword in SIMPLE_KEYWORDS)
    sentence_count = len([s for s in SENTENCE_SPLIT_PATTERN.split(message) if s.strip()])
    has_list = bool(LIST_MARKER_PATTERN.search(message)) or (
        " and " in message and "," in message
    )

    if has_simple and not has_complex and word_count < 15:
        analysis = ComplexityAnalysis(is_complex=False, reason="Simple query detected")
    elif has_complex or word_count > 30 or sentence_count > 2 or has_list:
        analysis = ComplexityAnalysis(
            is_complex=True,
            reason="Complex request with multiple requirements",
            suggested_questions=_suggest_questions(
                lowered, multi_part=has_list or sentence_count > 2
            ),
        )
    else:
        analysis = ComplexityAnalysis(is_complex=False, reason="Standard request")

    logger.debug(f"Request analysis: complex={analysis.is_complex} ({analysis.reason})")
    return analysis


def should_start_workflow(analysis: ComplexityAnalysis) -> bool:
    return analysis.is_complex
