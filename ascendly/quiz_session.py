"""
Quiz session state machine.

    NOT_STARTED ──start──> IN_PROGRESS ──answer/advance──> IN_PROGRESS
                                │
                 ┌──finish──────┴──────save_for_later──┐
                 v                                     v
             COMPLETED                          SAVED_FOR_LATER ──start──> IN_PROGRESS

Points of a sitting are committed exactly once: when the quiz completes
(progress record deleted) or when it is saved for later (sitting totals
zeroed before the progress record is written back). Calling an action from a
state that does not allow it raises ``InvalidTransitionError``, so a reload
cannot finalize the same sitting twice.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .leaderboard import Leaderboard
from .models import QuizProgress, QuizResult
from .scoring.attempts import AttemptCounter
from .scoring.points import QuestionScore, calculate_question_points
from .scoring.session import SessionScore, calculate_session_bonus
from .storage import Store
from .utils.clock import Timestamp, to_iso

logger = logging.getLogger(__name__)


class QuizState(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SAVED_FOR_LATER = "saved_for_later"


TRANSITIONS = {
    QuizState.NOT_STARTED: {QuizState.IN_PROGRESS},
    QuizState.IN_PROGRESS: {
        QuizState.IN_PROGRESS,
        QuizState.COMPLETED,
        QuizState.SAVED_FOR_LATER,
    },
    QuizState.SAVED_FOR_LATER: {QuizState.IN_PROGRESS},
    QuizState.COMPLETED: set(),
}


class InvalidTransitionError(ValueError):
    """An action was requested from a state that does not allow it."""


@dataclass(frozen=True)
class AnswerOutcome:
    """Result of one submitted answer."""

    question_index: int
    attempt_ordinal: int
    score: QuestionScore

    @property
    def points(self) -> int:
        return self.score.final_points


class QuizSession:
    """
    One account working through one unit quiz of a class.

    Usage:
        session = QuizSession(store, "acc-1", "AP Biology", "Unit 3", total_questions=10)
        session.start()                       # or start(fresh=True) to discard saved progress
        outcome = session.answer("BIO-U3-Q01", is_correct=True, elapsed_seconds=12)
        session.advance()                     # last question -> finish()
        session.save_for_later()              # leave early, keep the position
    """

    def __init__(
        self,
        store: Store,
        account_id: str,
        class_name: str,
        unit: str,
        total_questions: int,
        leaderboard: Optional[Leaderboard] = None,
        attempt_counter: Optional[AttemptCounter] = None,
    ):
        """
        Initialize a quiz session.

        Args:
            store: Persistence for attempts, progress, results and accounts
            account_id: Account taking the quiz
            class_name: Class the quiz belongs to
            unit: Unit being quizzed
            total_questions: Number of questions in the quiz
            leaderboard: Score committer (default: built on ``store``)
            attempt_counter: Attempt bookkeeping (default: built on ``store``)

        Raises:
            ValueError: If total_questions is not positive
        """
        if total_questions <= 0:
            raise ValueError(f"total_questions must be > 0, got {total_questions}")

        self.store = store
        self.account_id = account_id
        self.class_name = class_name
        self.unit = unit
        self.total_questions = total_questions
        self.leaderboard = leaderboard or Leaderboard(store)
        self.attempts = attempt_counter or AttemptCounter(store)

        self.progress: Optional[QuizProgress] = store.get_quiz_progress(
            account_id, class_name, unit
        )
        self.state = (
            QuizState.SAVED_FOR_LATER if self.progress else QuizState.NOT_STARTED
        )
        self.last_session_score: Optional[SessionScore] = None

    # ==================== Transitions ====================

    def _check(self, target: QuizState, action: str) -> None:
        if target not in TRANSITIONS[self.state]:
            raise InvalidTransitionError(
                f"Cannot {action} quiz {self.class_name}/{self.unit} "
                f"for {self.account_id}: it is {self.state.value}"
            )

    def _save_progress(self, now: Optional[Timestamp] = None) -> None:
        self.progress.updated_at = to_iso(now)
        self.store.upsert_quiz_progress(self.progress)

    def start(self, fresh: bool = False, now: Optional[Timestamp] = None) -> QuizProgress:
        """
        Enter IN_PROGRESS.

        Resumes saved progress unless ``fresh`` is set, in which case the saved
        record is discarded and the quiz restarts at the first question.

        Raises:
            InvalidTransitionError: If already in progress or completed
            ValueError: If the account is unknown or not enrolled in the class
        """
        self._check(QuizState.IN_PROGRESS, "start")

        account = self.store.get_account(self.account_id)
        if account is None:
            raise ValueError(f"Account {self.account_id} not found")
        if not account.is_enrolled(self.class_name):
            raise ValueError(
                f"Account {self.account_id} is not enrolled in '{self.class_name}'"
            )

        resuming = self.state == QuizState.SAVED_FOR_LATER and not fresh
        if resuming:
            self.progress.current_index = min(
                self.progress.current_index, self.total_questions - 1
            )
        else:
            if self.state == QuizState.SAVED_FOR_LATER:
                self.store.delete_quiz_progress(self.account_id, self.class_name, self.unit)
            self.progress = QuizProgress(
                account_id=self.account_id, class_name=self.class_name, unit=self.unit
            )

        self._save_progress(now)
        self.state = QuizState.IN_PROGRESS
        logger.info(
            "%s quiz %s/%s for %s at question %d",
            "Resumed" if resuming else "Started",
            self.class_name,
            self.unit,
            self.account_id,
            self.progress.current_index,
        )
        return self.progress

    def answer(
        self,
        question_id: str,
        is_correct: bool,
        elapsed_seconds: float,
        timestamp: Optional[Timestamp] = None,
    ) -> AnswerOutcome:
        """
        Score an answer to the question at the current index.

        The question's correct-answer history is read before the attempt is
        recorded, so the answer being scored never adds to its own mastery
        penalty.
        """
        self._check(QuizState.IN_PROGRESS, "answer")
        timestamp = to_iso(timestamp)

        history = self.attempts.correct_timestamps(self.account_id, question_id)
        ordinal = self.attempts.record_attempt(
            self.account_id, question_id, is_correct, elapsed_seconds, timestamp
        )
        score = calculate_question_points(
            is_correct, ordinal, elapsed_seconds, history, now=timestamp
        )

        progress = self.progress
        progress.session_total_answered += 1
        if is_correct:
            progress.correct_answers += 1
            progress.session_correct_answers += 1
            progress.points_earned += score.final_points
        progress.answered_questions.add(progress.current_index)
        self._save_progress(timestamp)

        logger.debug(
            "%s answered %s (attempt %d): +%d (%s)",
            self.account_id,
            question_id,
            ordinal,
            score.final_points,
            score.format_breakdown(),
        )
        return AnswerOutcome(progress.current_index, ordinal, score)

    def go_to(self, index: int, now: Optional[Timestamp] = None) -> None:
        """Jump to another question of the quiz."""
        self._check(QuizState.IN_PROGRESS, "navigate")
        if not 0 <= index < self.total_questions:
            raise ValueError(
                f"Question index {index} out of range 0..{self.total_questions - 1}"
            )
        self.progress.current_index = index
        self._save_progress(now)

    def advance(self, now: Optional[Timestamp] = None) -> Optional[SessionScore]:
        """
        Move to the next question, finishing the quiz after the last one.

        Returns:
            The SessionScore when the quiz completed, else None
        """
        self._check(QuizState.IN_PROGRESS, "advance")
        if self.progress.current_index < self.total_questions - 1:
            self.progress.current_index += 1
            self._save_progress(now)
            return None
        return self.finish(now)

    def _session_score(self, now: str) -> SessionScore:
        account = self.store.get_account(self.account_id)
        if account is None:
            raise ValueError(f"Account {self.account_id} not found")

        progress = self.progress
        return calculate_session_bonus(
            progress.points_earned,
            progress.session_correct_answers,
            progress.session_total_answered,
            account.streak,
            account.daily_points_for(now),
        )

    def _finalize_sitting(self, now: str) -> SessionScore:
        session_score = self._session_score(now)
        self.leaderboard.commit_session_points(
            self.account_id, self.class_name, session_score.final_session_points, now
        )
        logger.info(
            "Finalized sitting of %s in %s/%s: %d pts (%s)",
            self.account_id,
            self.class_name,
            self.unit,
            session_score.final_session_points,
            session_score.format_breakdown(),
        )
        self.last_session_score = session_score
        return session_score

    def finish(self, now: Optional[Timestamp] = None) -> SessionScore:
        """
        Complete the quiz: commit the sitting, append a QuizResult and
        delete the progress record.

        A resumed sitting with no new answers commits nothing, so the
        account's day streak and daily points are left as they were.
        """
        self._check(QuizState.COMPLETED, "finish")
        now = to_iso(now)

        if self.progress.session_total_answered > 0:
            session_score = self._finalize_sitting(now)
        else:
            session_score = self._session_score(now)
            self.last_session_score = session_score
            logger.info(
                "Completed %s/%s for %s with no answers this sitting, nothing committed",
                self.class_name,
                self.unit,
                self.account_id,
            )
        self.store.append_quiz_result(
            QuizResult(
                account_id=self.account_id,
                class_name=self.class_name,
                unit=self.unit,
                score=self.progress.correct_answers,
                total_questions=self.total_questions,
                points_earned=session_score.final_session_points,
                timestamp=now,
            )
        )
        self.store.delete_quiz_progress(self.account_id, self.class_name, self.unit)

        self.progress = None
        self.state = QuizState.COMPLETED
        return session_score

    def save_for_later(self, now: Optional[Timestamp] = None) -> Optional[SessionScore]:
        """
        Leave the quiz early.

        Answers given in this sitting are finalized and committed, the
        sitting totals are zeroed, and the position is saved for resuming.

        Returns:
            The SessionScore of the sitting, or None if nothing was answered
        """
        self._check(QuizState.SAVED_FOR_LATER, "save")
        now = to_iso(now)

        session_score = None
        if self.progress.session_total_answered > 0:
            session_score = self._finalize_sitting(now)
            self.progress.reset_session_totals()

        self._save_progress(now)
        self.state = QuizState.SAVED_FOR_LATER
        return session_score
