"""
Content orchestration: prompt → gateway → JSON pipeline → typed content.

generate() is the raw operation and raises DeutschLernError subclasses.
fetch() is the boundary the state machines use: it applies the request
epoch protocol and converts every failure into text, so callers only
check `current` and `error`.

Request epochs: each consumer (the level view, a quiz, speaking practice,
...) has its own counter. A request captures the incremented counter when
it is issued; its result may be applied only if no newer request was
issued for that consumer by the time it completes. In-flight calls are
never aborted, their results are just dropped.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, TypeVar, Union

from .errors import DeutschLernError, user_message
from .gateway import ChatGateway
from .history import HistoryCache
from .json_extract import parse_content
from .logger import logger
from .models import (
    MARKDOWN_SKILLS,
    VOCABULARY_CATEGORIES,
    AssessmentItem,
    GeneratedContent,
    GenerationKey,
    ListeningItem,
    MarkdownContent,
    PronunciationFeedback,
    Skill,
    SpeakingItem,
    VocabularyCard,
)
from . import prompts

T = TypeVar("T")

FINGERPRINT_CHARS = 100  # markdown responses are remembered by their opening


class RequestEpoch:
    """Monotonic request counter for one consumer."""

    def __init__(self) -> None:
        self.value = 0

    def issue(self) -> int:
        self.value += 1
        return self.value

    def is_current(self, epoch: int) -> bool:
        return epoch == self.value


@dataclass
class Fetched:
    """Outcome of one orchestrated request."""
    epoch: int
    content: Optional[Union[GeneratedContent, VocabularyCard]]
    error: Optional[str] = None
    current: bool = True

    @property
    def ok(self) -> bool:
        return self.error is None


def error_content(message: str) -> MarkdownContent:
    return MarkdownContent(text=f"### ❌ Error\n\n{message}", is_error=True)


class ContentOrchestrator:
    def __init__(self, gateway: ChatGateway, history: Optional[HistoryCache] = None):
        self.gateway = gateway
        self.history = history if history is not None else HistoryCache()
        self._epochs: Dict[str, RequestEpoch] = {}

    # ------------------------------------------------------------------
    # Request epochs
    # ------------------------------------------------------------------

    def _epoch(self, consumer: str) -> RequestEpoch:
        return self._epochs.setdefault(consumer, RequestEpoch())

    def begin(self, consumer: str) -> int:
        """Issue a new request epoch for consumer, superseding older ones."""
        return self._epoch(consumer).issue()

    def is_current(self, consumer: str, epoch: int) -> bool:
        return self._epoch(consumer).is_current(epoch)

    def invalidate(self, consumer: str) -> None:
        """Make every in-flight request of consumer stale."""
        self._epoch(consumer).issue()

    def current_epoch(self, consumer: str) -> int:
        return self._epoch(consumer).value

    async def fetch(
        self,
        consumer: str,
        level_id: str,
        skill: Skill,
        category: Optional[str] = None,
    ) -> Fetched:
        """generate() under the epoch protocol, with errors turned into text."""
        what = f"{level_id}/{skill.value}" + (f"/{category}" if category else "")
        return await self.guarded(consumer, what, lambda: self.generate(level_id, skill, category))

    async def guarded(self, consumer: str, what: str, call: Callable[[], Any]) -> Fetched:
        """Run any orchestrator coroutine factory under the epoch protocol."""
        epoch = self.begin(consumer)
        logger.gen_start(consumer, epoch, what)
        try:
            content = await call()
            error = None
        except DeutschLernError as e:
            error = user_message(e)
            content = error_content(error)
            logger.gen_error(f"[{consumer}#{epoch}] {type(e).__name__}: {e.message}")

        current = self.is_current(consumer, epoch)
        if not current:
            logger.gen_stale(consumer, epoch, self.current_epoch(consumer))
        return Fetched(epoch=epoch, content=content, error=error, current=current)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate(
        self,
        level_id: str,
        skill: Skill,
        category: Optional[str] = None,
    ) -> Union[GeneratedContent, VocabularyCard]:
        """Generate one item of content for level and skill."""
        if skill in MARKDOWN_SKILLS:
            return await self._generate_markdown(level_id, skill)
        if skill == Skill.ASSESSMENT:
            return await self._generate_structured(
                GenerationKey(level_id, skill), "question", prompts.assessment_prompt,
                AssessmentItem.from_dict, lambda item: item.sentence,
            )
        if skill == Skill.SPEAKING:
            return await self._generate_structured(
                GenerationKey(level_id, skill), "sentence", prompts.speaking_prompt,
                SpeakingItem.from_dict, lambda item: item.sentence,
            )
        if skill == Skill.LISTENING:
            return await self._generate_structured(
                GenerationKey(level_id, skill), "script", prompts.listening_prompt,
                ListeningItem.from_dict, lambda item: item.script,
            )
        if skill == Skill.VOCABULARY:
            if category is None:
                raise ValueError("Vocabulary generation needs a category")
            return await self.generate_vocabulary_card(level_id, category)
        raise ValueError(f"Unsupported skill: {skill}")

    async def _generate_markdown(self, level_id: str, skill: Skill) -> MarkdownContent:
        key = GenerationKey(level_id, skill)
        prompt = prompts.markdown_lesson_prompt(
            level_id, skill, self.history.prompt_fragment(key, "topic or prompt")
        )
        text = await self.gateway.complete(prompts.teacher_messages(prompt))
        self.history.record(key, text[:FINGERPRINT_CHARS])
        logger.gen(f"Markdown {skill.value} lesson for {level_id}: {len(text)} chars")
        return MarkdownContent(text=text)

    async def _generate_structured(
        self,
        key: GenerationKey,
        item_noun: str,
        build_prompt: Callable[[str, str], str],
        factory: Callable[[Any], T],
        salient: Callable[[T], str],
    ) -> T:
        prompt = build_prompt(key.level_id, self.history.prompt_fragment(key, item_noun))
        raw = await self.gateway.complete(prompts.json_messages(prompt))
        item = parse_content(raw, factory)
        self.history.record(key, salient(item))
        logger.gen(f"Generated {key.skill.value} {item_noun} for {key.level_id}: {salient(item)[:50]!r}")
        return item

    async def generate_vocabulary_card(self, level_id: str, category: str) -> VocabularyCard:
        if category not in VOCABULARY_CATEGORIES:
            raise ValueError(f"Unknown vocabulary category: {category}")
        return await self._generate_structured(
            GenerationKey(level_id, Skill.VOCABULARY, category), "word",
            lambda level, fragment: prompts.vocabulary_prompt(level, category, fragment),
            VocabularyCard.from_dict, lambda card: card.word,
        )

    async def analyze_pronunciation(self, original_text: str, user_transcript: str) -> PronunciationFeedback:
        """Compare what the learner said with the target sentence."""
        prompt = prompts.pronunciation_prompt(original_text, user_transcript)
        raw = await self.gateway.complete(prompts.json_messages(prompt))
        feedback = parse_content(raw, PronunciationFeedback.from_dict)
        logger.gen(f"Pronunciation score {feedback.score}/100 for {original_text[:40]!r}")
        return feedback

    async def translate_text(self, text: str, target_language: str) -> str:
        if target_language not in prompts.TRANSLATION_TARGETS:
            raise ValueError(f"Unsupported translation target: {target_language}")
        prompt = prompts.translation_prompt(text, target_language)
        return (await self.gateway.complete(prompts.user_messages(prompt))).strip()

    async def assistant_response(self, query: str, target_language: str) -> str:
        prompt = prompts.assistant_prompt(query, target_language)
        return (await self.gateway.complete(prompts.user_messages(prompt))).strip()
