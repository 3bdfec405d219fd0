"""Clarification tracker: questions asked before a plan is drafted."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional

from caseflow.workflow.models import Answer, ClarificationQuestion, ClarificationState

logger = logging.getLogger(__name__)


class ClarificationTracker:
    """Records answers against a ClarificationState and derives completion.

    The tracker mutates the state it is given, so the orchestrator can hand
    it the ClarificationState stored in its workflow state.
    """

    def __init__(self, state: Optional[ClarificationState] = None):
        self._state = state if state is not None else ClarificationState()

    @property
    def state(self) -> ClarificationState:
        return self._state

    @property
    def questions(self) -> list[ClarificationQuestion]:
        return self._state.questions

    @property
    def is_complete(self) -> bool:
        return self._state.is_complete

    @property
    def current_question(self) -> Optional[ClarificationQuestion]:
        if not self._state.questions:
            return None
        return self._state.questions[self._state.current_question_index]

    @property
    def answered_count(self) -> int:
        return sum(1 for q in self._state.questions if q.has_answer)

    def set_questions(self, questions: Iterable[ClarificationQuestion]) -> None:
        """Replace the question set and restart presentation at the first question."""
        self._state.questions = list(questions)
        self._state.current_question_index = 0
        self._refresh()

    def answer_question(
        self,
        question_id: str,
        answer: Answer,
        answered_at: Optional[datetime] = None,
    ) -> bool:
        """Record an answer.

        Returns:
            False if no question has this id (nothing changes), True otherwise.
        """
        question = self.get_question(question_id)
        if question is None:
            logger.debug(f"Ignoring answer for unknown question: {question_id}")
            return False

        question.answer = list(answer) if isinstance(answer, (list, tuple)) else answer
        question.answered_at = answered_at or datetime.now()
        self._advance_index()
        self._refresh()
        return True

    def get_question(self, question_id: str) -> Optional[ClarificationQuestion]:
        for question in self._state.questions:
            if question.id == question_id:
                return question
        return None

    def unanswered_required(self) -> list[ClarificationQuestion]:
        """Required questions that still lack a non-empty answer."""
        return [q for q in self._state.questions if q.required and not q.has_answer]

    def mark_complete(self) -> None:
        """Force completion, used when the user moves on with optional gaps."""
        self._state.is_complete = True

    def _advance_index(self) -> None:
        questions = self._state.questions
        for index, question in enumerate(questions):
            if not question.has_answer:
                self._state.current_question_index = index
                return
        self._state.current_question_index = max(len(questions) - 1, 0)

    def _refresh(self) -> None:
        self._state.is_complete = not self.unanswered_required()
