from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from .errors import InvalidContentError


class Skill(str, Enum):
    """Practice areas offered for every level."""
    READING = "Reading"
    WRITING = "Writing"
    SPEAKING = "Speaking"
    LISTENING = "Listening"
    ASSESSMENT = "Assessment"
    VOCABULARY = "Vocabulary"

    @classmethod
    def from_string(cls, s: str) -> "Skill":
        for skill in cls:
            if skill.value.lower() == s.strip().lower():
                return skill
        raise ValueError(f"Unknown skill: {s}")


MARKDOWN_SKILLS = frozenset({Skill.READING, Skill.WRITING})
VOCABULARY_CATEGORIES = ("noun", "adjective")
ASSESSMENT_OPTION_COUNT = 3


@dataclass(frozen=True)
class Level:
    id: str
    title: str
    description: str


LEVELS: List[Level] = [
    Level("A1", "Anfänger", "Beginner level, basic phrases and personal introductions."),
    Level("A2", "Grundlagen", "Elementary, simple sentences on familiar topics."),
    Level("B1", "Mittelstufe", "Intermediate, understand main points on familiar matters."),
    Level("B2", "Gute Mittelstufe", "Upper Intermediate, understand complex texts."),
    Level("C1", "Fortgeschritten", "Advanced, express ideas fluently and spontaneously."),
    Level("C2", "Experte", "Proficient, understand with ease virtually everything."),
]


def get_level(level_id: str) -> Level:
    for level in LEVELS:
        if level.id == level_id.upper():
            return level
    raise ValueError(f"Unknown level: {level_id}")


@dataclass(frozen=True)
class GenerationKey:
    """Identifies one dedup history bucket."""
    level_id: str
    skill: Skill
    category: Optional[str] = None

    @property
    def prefix(self) -> str:
        return f"{self.level_id}-{self.skill.value}"

    @property
    def bucket_id(self) -> str:
        if self.category:
            return f"{self.prefix}-{self.category}"
        return self.prefix


# ---------------------------------------------------------------------------
# Validation helpers for model-produced JSON
# ---------------------------------------------------------------------------

def _require_mapping(data: Any, what: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise InvalidContentError(f"{what} must be a JSON object, got {type(data).__name__}")
    return data


def _require_str(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise InvalidContentError(f"missing or empty '{key}'")
    return value.strip()


def _optional_str(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    return value.strip() if isinstance(value, str) else ""


def _require_str_list(data: Dict[str, Any], key: str) -> List[str]:
    value = data.get(key)
    if not isinstance(value, list) or not value:
        raise InvalidContentError(f"'{key}' must be a non-empty list")
    if not all(isinstance(v, (str, int, float)) for v in value):
        raise InvalidContentError(f"'{key}' must contain only strings")
    return [str(v).strip() for v in value]


def _require_answer_in_options(correct_answer: str, options: List[str]) -> None:
    if correct_answer not in options:
        raise InvalidContentError(f"correctAnswer {correct_answer!r} is not one of the options")


# ---------------------------------------------------------------------------
# Generated content (tagged union)
# ---------------------------------------------------------------------------

@dataclass
class MarkdownContent:
    """Free-form lesson text; also used as the error placeholder."""
    text: str
    is_error: bool = False
    kind: Literal["markdown"] = field(default="markdown", init=False)


@dataclass
class AssessmentItem:
    """A fill-in-the-blank question with three options."""
    sentence: str
    options: List[str]
    correct_answer: str
    translation: str = ""
    kind: Literal["assessment"] = field(default="assessment", init=False)

    @classmethod
    def from_dict(cls, data: Any) -> "AssessmentItem":
        data = _require_mapping(data, "assessment item")
        options = _require_str_list(data, "options")
        if len(options) != ASSESSMENT_OPTION_COUNT:
            raise InvalidContentError(f"expected {ASSESSMENT_OPTION_COUNT} options, got {len(options)}")
        correct_answer = _require_str(data, "correctAnswer")
        _require_answer_in_options(correct_answer, options)
        return cls(
            sentence=_require_str(data, "sentence"),
            options=options,
            correct_answer=correct_answer,
            translation=_optional_str(data, "translation"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sentence": self.sentence,
            "options": list(self.options),
            "correctAnswer": self.correct_answer,
            "translation": self.translation,
        }


@dataclass
class SpeakingItem:
    """A sentence the learner reads aloud."""
    sentence: str
    translation: str = ""
    kind: Literal["speaking"] = field(default="speaking", init=False)

    @classmethod
    def from_dict(cls, data: Any) -> "SpeakingItem":
        data = _require_mapping(data, "speaking exercise")
        return cls(sentence=_require_str(data, "sentence"), translation=_optional_str(data, "translation"))

    def to_dict(self) -> Dict[str, Any]:
        return {"sentence": self.sentence, "translation": self.translation}


@dataclass
class ListeningItem:
    """A short German script with one comprehension question."""
    script: str
    translation: str
    question: str
    question_translation: str
    options: List[str]
    options_translations: List[str]
    correct_answer: str
    kind: Literal["listening"] = field(default="listening", init=False)

    @classmethod
    def from_dict(cls, data: Any) -> "ListeningItem":
        data = _require_mapping(data, "listening exercise")
        options = _require_str_list(data, "options")
        # older prompts used the singular spelling
        key = "optionsTranslations" if "optionsTranslations" in data else "optionTranslations"
        translations = _require_str_list(data, key)
        if len(translations) != len(options):
            raise InvalidContentError(
                f"{len(options)} options but {len(translations)} option translations"
            )
        correct_answer = _require_str(data, "correctAnswer")
        _require_answer_in_options(correct_answer, options)
        return cls(
            script=_require_str(data, "script"),
            translation=_optional_str(data, "translation"),
            question=_require_str(data, "question"),
            question_translation=_optional_str(data, "questionTranslation"),
            options=options,
            options_translations=translations,
            correct_answer=correct_answer,
        )

    def option_translation(self, option: str) -> str:
        """English translation of one of the German options, or ''."""
        try:
            return self.options_translations[self.options.index(option)]
        except (ValueError, IndexError):
            return ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "script": self.script,
            "translation": self.translation,
            "question": self.question,
            "questionTranslation": self.question_translation,
            "options": list(self.options),
            "optionsTranslations": list(self.options_translations),
            "correctAnswer": self.correct_answer,
        }


GeneratedContent = Union[MarkdownContent, AssessmentItem, SpeakingItem, ListeningItem]
QuizItem = Union[AssessmentItem, ListeningItem]


@dataclass
class VocabularyCard:
    """A flash card: German word on the front, translation and example on the back."""
    word: str
    translation: str
    example_sentence: str = ""
    example_translation: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "VocabularyCard":
        data = _require_mapping(data, "vocabulary card")
        return cls(
            word=_require_str(data, "word"),
            translation=_require_str(data, "translation"),
            example_sentence=_optional_str(data, "exampleSentence"),
            example_translation=_optional_str(data, "exampleTranslation"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "word": self.word,
            "translation": self.translation,
            "exampleSentence": self.example_sentence,
            "exampleTranslation": self.example_translation,
        }


# ---------------------------------------------------------------------------
# Pronunciation feedback
# ---------------------------------------------------------------------------

WORD_STATUSES = ("correct", "incorrect", "mispronounced")


@dataclass
class WordAnalysis:
    word: str
    status: Literal["correct", "incorrect", "mispronounced"]
    comment: Optional[str] = None


@dataclass
class PronunciationFeedback:
    overall_comment: str
    score: int                       # 0–100
    analyzed_words: List[WordAnalysis] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "PronunciationFeedback":
        data = _require_mapping(data, "pronunciation feedback")
        try:
            score = int(round(float(data.get("score", 0))))
        except (TypeError, ValueError, OverflowError):
            # OverflowError: "1e999" / Infinity survive float() but not round()
            raise InvalidContentError("'score' must be a finite number")
        words_raw = data.get("analyzedWords", [])
        if not isinstance(words_raw, list):
            raise InvalidContentError("'analyzedWords' must be a list")

        words: List[WordAnalysis] = []
        for entry in words_raw:
            entry = _require_mapping(entry, "analyzed word")
            status = _require_str(entry, "status").lower()
            if status not in WORD_STATUSES:
                raise InvalidContentError(f"unknown word status {status!r}")
            comment = entry.get("comment")
            words.append(WordAnalysis(
                word=_require_str(entry, "word"),
                status=status,
                comment=comment if isinstance(comment, str) and comment.strip() else None,
            ))

        return cls(
            overall_comment=_optional_str(data, "overallComment"),
            score=max(0, min(100, score)),
            analyzed_words=words,
        )

    @classmethod
    def failed(cls, sentence: str, message: str) -> "PronunciationFeedback":
        """Feedback shown when the analysis call itself failed."""
        return cls(
            overall_comment=message,
            score=0,
            analyzed_words=[
                WordAnalysis(word=word, status="incorrect", comment="Analysis failed")
                for word in sentence.split()
            ],
        )


# ---------------------------------------------------------------------------
# Quiz runs and reports
# ---------------------------------------------------------------------------

@dataclass
class QuizResult:
    question: QuizItem
    user_answer: str
    is_correct: bool

    def to_dict(self) -> Dict[str, Any]:
        return {"question": self.question.to_dict(), "userAnswer": self.user_answer, "isCorrect": self.is_correct}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuizResult":
        question_data = data.get("question", {})
        question = (ListeningItem.from_dict(question_data) if "script" in question_data
                    else AssessmentItem.from_dict(question_data))
        return cls(question=question, user_answer=data.get("userAnswer", ""),
                   is_correct=bool(data.get("isCorrect", False)))


@dataclass
class QuizRunState:
    """Progress of one fixed-length quiz run."""
    length: int
    questions_answered: int = 0
    correct_answers: int = 0
    is_complete: bool = False
    results: List[QuizResult] = field(default_factory=list)

    def record(self, question: QuizItem, user_answer: str) -> QuizResult:
        """Score one answer. The only mutation a run allows."""
        if self.is_complete:
            raise ValueError("Quiz run is already complete")
        result = QuizResult(question=question, user_answer=user_answer,
                            is_correct=user_answer == question.correct_answer)
        self.results.append(result)
        self.questions_answered += 1
        if result.is_correct:
            self.correct_answers += 1
        self.is_complete = self.questions_answered == self.length
        return result


@dataclass
class Report:
    """Saved outcome of a completed listening quiz."""
    id: str
    title: str
    created_at: str                  # ISO timestamp (UTC)
    level_id: str
    score: int
    total: int
    results: List[QuizResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "createdAt": self.created_at,
            "levelId": self.level_id,
            "score": self.score,
            "total": self.total,
            "results": [r.to_dict() for r in self.results],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Report":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            created_at=data.get("createdAt", ""),
            level_id=data.get("levelId", ""),
            score=int(data.get("score", 0)),
            total=int(data.get("total", 0)),
            results=[QuizResult.from_dict(r) for r in data.get("results", [])],
        )


# ---------------------------------------------------------------------------
# Interactive statuses
# ---------------------------------------------------------------------------

class SpeakingStatus(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    PROCESSING = "processing"
    FEEDBACK = "feedback"


class AudioStatus(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"


class AssistantStatus(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    PROCESSING = "processing"
    SPEAKING = "speaking"
