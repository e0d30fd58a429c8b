"""
Fixed-length quiz runs (assessment: 25 questions, listening: 10).

    AWAITING_QUESTION --item arrives--> AWAITING_ANSWER
    AWAITING_ANSWER --answer, run not done--> (display delay) AWAITING_QUESTION
    AWAITING_ANSWER --last answer--> COMPLETE (terminal)

Questions come from the orchestrator under this quiz's own request epoch,
so a restart or abandon() makes any in-flight question stale.
"""

import asyncio
from enum import Enum
from typing import Callable, Optional

from .config import DEFAULT_DISPLAY_DELAY
from .logger import logger
from .models import QuizItem, QuizResult, QuizRunState, Report, Skill
from .orchestrator import ContentOrchestrator
from .reports import ReportStore
from .speech import ScriptPlayer

ASSESSMENT_LENGTH = 25
LISTENING_QUIZ_LENGTH = 10


class QuizPhase(str, Enum):
    AWAITING_QUESTION = "awaiting_question"
    AWAITING_ANSWER = "awaiting_answer"
    COMPLETE = "complete"


class QuizSession:
    """One quiz run over generated questions of a single skill."""

    def __init__(
        self,
        orchestrator: ContentOrchestrator,
        level_id: str,
        skill: Skill,
        length: int,
        display_delay: float = DEFAULT_DISPLAY_DELAY,
        on_complete: Optional[Callable[["QuizSession"], None]] = None,
    ):
        if length < 1:
            raise ValueError("Quiz length must be at least 1")
        self.orchestrator = orchestrator
        self.level_id = level_id
        self.skill = skill
        self.length = length
        self.display_delay = display_delay
        self.on_complete = on_complete
        self.consumer = f"quiz:{level_id}:{skill.value}"

        self.state = QuizRunState(length=length)
        self.phase = QuizPhase.AWAITING_QUESTION
        self.current_item: Optional[QuizItem] = None
        self.selection: Optional[QuizResult] = None
        self.error: Optional[str] = None
        self.is_loading = False
        self._advance: Optional[asyncio.Task] = None

    @property
    def is_complete(self) -> bool:
        return self.phase == QuizPhase.COMPLETE

    @property
    def question_number(self) -> int:
        """1-based number of the question being shown."""
        return min(self.state.questions_answered + (0 if self.selection else 1), self.length)

    def _set_phase(self, phase: QuizPhase) -> None:
        if phase != self.phase:
            logger.quiz_transition(f"{self.skill.value}:{self.phase.value}", phase.value)
        self.phase = phase

    async def start(self) -> None:
        """Begin a fresh run: zeroed score, cleared history, first question."""
        self._cancel_advance()
        self.state = QuizRunState(length=self.length)
        self.selection = None
        self.error = None
        self.current_item = None
        self.phase = QuizPhase.AWAITING_QUESTION
        # the first item of a new run must not be blocked by the last run's items
        self.orchestrator.history.clear(self.level_id, self.skill)
        logger.quiz(f"Starting {self.skill.value} quiz for {self.level_id} ({self.length} questions)")
        await self.load_next()

    async def load_next(self) -> None:
        """Request the next question. Also the manual retry after a failed load."""
        if self.is_complete:
            logger.debug(f"{self.consumer}: complete, not loading another question")
            return

        self._set_phase(QuizPhase.AWAITING_QUESTION)
        self.current_item = None
        self.selection = None
        self.error = None
        self.is_loading = True
        self._question_changed()

        fetched = await self.orchestrator.fetch(self.consumer, self.level_id, self.skill)
        if not fetched.current:
            return

        self.is_loading = False
        if fetched.error is not None:
            self.error = fetched.error
            logger.quiz(f"Question {self.question_number} failed to load: {fetched.error}")
            return

        self.current_item = fetched.content
        self._set_phase(QuizPhase.AWAITING_ANSWER)

    def submit_answer(self, answer: str) -> Optional[QuizResult]:
        """
        Score answer against the current question.

        Returns None (and changes nothing) when no question is waiting for
        an answer, including a second answer to the same question and any
        answer after completion. Must be called from within the event loop.
        """
        if self.phase != QuizPhase.AWAITING_ANSWER or self.selection is not None or self.current_item is None:
            logger.debug(f"{self.consumer}: answer {answer!r} ignored in phase {self.phase.value}")
            return None

        result = self.state.record(self.current_item, answer)
        self.selection = result
        logger.quiz(
            f"Q{self.state.questions_answered}/{self.length}: {'✓' if result.is_correct else '✗'} "
            f"{answer!r} (score {self.state.correct_answers})"
        )

        if self.state.is_complete:
            self._set_phase(QuizPhase.COMPLETE)
            self._completed()
            if self.on_complete:
                self.on_complete(self)
        else:
            self._advance = asyncio.get_running_loop().create_task(self._advance_after_delay())
        return result

    async def _advance_after_delay(self) -> None:
        await asyncio.sleep(self.display_delay)
        await self.load_next()

    async def settle(self) -> None:
        """Wait for a scheduled move to the next question, if any."""
        task = self._advance
        if task is not None and not task.done():
            await asyncio.wait({task})

    def abandon(self) -> None:
        """Leave the quiz: drop the pending advance and any in-flight question."""
        self._cancel_advance()
        self.orchestrator.invalidate(self.consumer)
        self.is_loading = False
        self._question_changed()

    def _cancel_advance(self) -> None:
        if self._advance is not None and not self._advance.done():
            self._advance.cancel()
        self._advance = None

    def _question_changed(self) -> None:
        """Hook: the visible question is about to change."""

    def _completed(self) -> None:
        logger.success(
            f"{self.skill.value} quiz complete: {self.state.correct_answers}/{self.length} correct"
        )


class ListeningQuiz(QuizSession):
    """Listening quiz; completing it saves a Report."""

    def __init__(
        self,
        orchestrator: ContentOrchestrator,
        level_id: str,
        report_store: ReportStore,
        player: Optional[ScriptPlayer] = None,
        display_delay: float = DEFAULT_DISPLAY_DELAY,
        length: int = LISTENING_QUIZ_LENGTH,
    ):
        super().__init__(orchestrator, level_id, Skill.LISTENING, length, display_delay)
        self.report_store = report_store
        self.player = player
        self.show_translation = False
        self.report: Optional[Report] = None

    def play_script(self) -> bool:
        if self.player is None or self.current_item is None:
            return False
        return self.player.play(self.current_item.script)

    def toggle_translation(self) -> None:
        self.show_translation = not self.show_translation

    def _question_changed(self) -> None:
        self.show_translation = False
        if self.player is not None:
            self.player.stop()

    def _completed(self) -> None:
        super()._completed()
        self.report = self.report_store.add(
            title=f"Listening Quiz - Level {self.level_id}",
            level_id=self.level_id,
            score=self.state.correct_answers,
            total=self.length,
            results=list(self.state.results),
        )


def assessment_quiz(
    orchestrator: ContentOrchestrator,
    level_id: str,
    display_delay: float = DEFAULT_DISPLAY_DELAY,
) -> QuizSession:
    return QuizSession(orchestrator, level_id, Skill.ASSESSMENT, ASSESSMENT_LENGTH, display_delay)


def listening_quiz(
    orchestrator: ContentOrchestrator,
    level_id: str,
    report_store: ReportStore,
    player: Optional[ScriptPlayer] = None,
    display_delay: float = DEFAULT_DISPLAY_DELAY,
) -> ListeningQuiz:
    return ListeningQuiz(orchestrator, level_id, report_store, player, display_delay)
