"""
Level session: everything a learner can do inside one CEFR level.

Selecting a skill leaves whatever activity was running (its in-flight
requests become stale) and starts the new one. Reading and Writing show a
generated lesson under the "level" request epoch; the other skills own
their own state machines.
"""

from typing import Callable, Dict, List, Optional

from .config import DEFAULT_DISPLAY_DELAY
from .logger import logger
from .models import (
    MARKDOWN_SKILLS,
    VOCABULARY_CATEGORIES,
    MarkdownContent,
    Skill,
    VocabularyCard,
    get_level,
)
from .orchestrator import ContentOrchestrator
from .quiz import ListeningQuiz, QuizSession, assessment_quiz, listening_quiz
from .reports import ReportStore
from .speaking import SpeakingPractice
from .speech import ScriptPlayer, SpeechRecognizer

LEVEL_CONSUMER = "level"
VOCABULARY_CONSUMER = "vocabulary"

SKILLS: List[Skill] = [
    Skill.READING,
    Skill.WRITING,
    Skill.LISTENING,
    Skill.SPEAKING,
    Skill.VOCABULARY,
    Skill.ASSESSMENT,
]


class VocabularyTrainer:
    """Flash cards for nouns and adjectives of one level."""

    def __init__(self, orchestrator: ContentOrchestrator, level_id: str, player: Optional[ScriptPlayer] = None):
        self.orchestrator = orchestrator
        self.level_id = level_id
        self.player = player

        self.category = VOCABULARY_CATEGORIES[0]
        self.card: Optional[VocabularyCard] = None
        self.is_flipped = False
        self.is_loading = False
        self.error: Optional[str] = None

    async def start(self) -> None:
        self.orchestrator.history.clear(self.level_id, Skill.VOCABULARY)
        await self.next_card(VOCABULARY_CATEGORIES[0])

    async def next_card(self, category: str) -> None:
        if category not in VOCABULARY_CATEGORIES:
            raise ValueError(f"Unknown vocabulary category: {category}")
        self.category = category
        self.card = None
        self.is_flipped = False
        self.error = None
        self.is_loading = True

        fetched = await self.orchestrator.fetch(VOCABULARY_CONSUMER, self.level_id, Skill.VOCABULARY, category)
        if not fetched.current:
            return

        self.is_loading = False
        if fetched.error is not None:
            self.error = fetched.error
            return
        self.card = fetched.content

    def flip(self) -> None:
        self.is_flipped = not self.is_flipped

    def speak_word(self) -> bool:
        if self.player is None or self.card is None:
            return False
        self.player.stop()
        return self.player.play(self.card.word)

    def close(self) -> None:
        self.orchestrator.invalidate(VOCABULARY_CONSUMER)
        self.is_loading = False
        if self.player is not None:
            self.player.stop()


class LevelSession:
    """Skill selection and the activities of one level."""

    def __init__(
        self,
        orchestrator: ContentOrchestrator,
        level_id: str,
        report_store: ReportStore,
        recognizer: SpeechRecognizer,
        player: Optional[ScriptPlayer] = None,
        display_delay: float = DEFAULT_DISPLAY_DELAY,
    ):
        self.level = get_level(level_id)
        self.orchestrator = orchestrator

        self.selected_skill: Optional[Skill] = None
        self.content: Optional[MarkdownContent] = None
        self.is_loading = False

        self.assessment: QuizSession = assessment_quiz(orchestrator, self.level.id, display_delay)
        self.listening: ListeningQuiz = listening_quiz(
            orchestrator, self.level.id, report_store, player, display_delay
        )
        self.speaking = SpeakingPractice(orchestrator, recognizer, self.level.id)
        self.vocabulary = VocabularyTrainer(orchestrator, self.level.id, player)

    @property
    def level_id(self) -> str:
        return self.level.id

    def _leave_activities(self, keep: Optional[Skill] = None) -> None:
        leaving: Dict[Skill, Callable[[], None]] = {
            Skill.ASSESSMENT: self.assessment.abandon,
            Skill.LISTENING: self.listening.abandon,
            Skill.SPEAKING: self.speaking.close,
            Skill.VOCABULARY: self.vocabulary.close,
        }
        for skill, leave in leaving.items():
            if skill != keep:
                leave()

    async def select_skill(self, skill: Skill) -> None:
        logger.info(f"{self.level.id}: {self.selected_skill.value if self.selected_skill else '-'} → {skill.value}")
        self.selected_skill = skill
        self._leave_activities(keep=skill)
        self.content = None

        if skill in MARKDOWN_SKILLS:
            await self._load_lesson(skill)
            return

        # a lesson still in flight must not land on top of the new activity
        self.orchestrator.invalidate(LEVEL_CONSUMER)
        self.is_loading = False

        if skill == Skill.ASSESSMENT:
            await self.assessment.start()
        elif skill == Skill.LISTENING:
            await self.listening.start()
        elif skill == Skill.SPEAKING:
            await self.speaking.load_sentence()
        elif skill == Skill.VOCABULARY:
            await self.vocabulary.start()

    async def _load_lesson(self, skill: Skill) -> None:
        self.is_loading = True
        fetched = await self.orchestrator.fetch(LEVEL_CONSUMER, self.level.id, skill)
        if not fetched.current:
            return
        self.content = fetched.content
        self.is_loading = False

    def close(self) -> None:
        """Leave the level entirely."""
        self._leave_activities()
        self.orchestrator.invalidate(LEVEL_CONSUMER)
        self.is_loading = False
