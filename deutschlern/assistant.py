"""
Free-text helpers outside the level sessions: a translator and a spoken
question/answer assistant.
"""

import asyncio
from dataclasses import dataclass
from typing import Dict, List, Literal, Optional

from .logger import logger
from .models import AssistantStatus
from .orchestrator import ContentOrchestrator
from .prompts import TRANSLATION_TARGETS
from .speech import SpeechRecognizer, SpeechSynthesizer, clean_for_speech

TRANSLATOR_CONSUMER = "translator"
ASSISTANT_CONSUMER = "assistant"

# voice hint per answer language
VOICE_HINTS: Dict[str, str] = {"English": "en-US", "Tamil": "ta-IN"}

WELCOME_MESSAGE = (
    "Hallo! I'm your German learning assistant. "
    "Ask me about words, grammar or phrases."
)


def _check_target(target_language: str) -> None:
    if target_language not in TRANSLATION_TARGETS:
        raise ValueError(f"Unsupported language: {target_language}")


class Translator:
    """Translates German text into English or Tamil."""

    def __init__(self, orchestrator: ContentOrchestrator, target_language: str = "English"):
        _check_target(target_language)
        self.orchestrator = orchestrator
        self.target_language = target_language
        self.translated_text = ""
        self.error = ""
        self.is_loading = False

    async def translate(self, text: str, target_language: Optional[str] = None) -> Optional[str]:
        """Returns the translation, or None when text is blank or the call failed."""
        if not text.strip():
            return None
        if target_language is not None:
            _check_target(target_language)
            self.target_language = target_language
        target = self.target_language

        self.is_loading = True
        self.translated_text = ""
        self.error = ""
        fetched = await self.orchestrator.guarded(
            TRANSLATOR_CONSUMER, f"translation to {target}",
            lambda: self.orchestrator.translate_text(text, target),
        )
        if not fetched.current:
            return None

        self.is_loading = False
        if fetched.error is not None:
            self.error = fetched.error
            return None
        self.translated_text = fetched.content
        return self.translated_text


@dataclass
class AssistantMessage:
    author: Literal["user", "bot"]
    text: str


class VoiceAssistant:
    """
    Spoken Q&A about German.

    IDLE -> LISTENING -> PROCESSING -> SPEAKING -> IDLE. Replies are cleaned
    of symbols speech engines read aloud before they are shown and spoken.
    The synthesizer must not be shared with a ScriptPlayer; both bind its
    callbacks.
    """

    def __init__(
        self,
        orchestrator: ContentOrchestrator,
        recognizer: SpeechRecognizer,
        synthesizer: SpeechSynthesizer,
        target_language: str = "English",
    ):
        _check_target(target_language)
        self.orchestrator = orchestrator
        self.recognizer = recognizer
        self.synthesizer = synthesizer
        self.target_language = target_language

        self.status = AssistantStatus.IDLE
        self.conversation: List[AssistantMessage] = []
        self._query: Optional[asyncio.Task] = None

        recognizer.on_start = self._on_listen_start
        recognizer.on_end = self._on_listen_end
        recognizer.on_error = self._on_listen_error
        recognizer.on_result = self.handle_result

        synthesizer.on_start = self._on_speak_start
        synthesizer.on_end = self._on_speak_end
        synthesizer.on_error = self._on_speak_error

    def _set_status(self, status: AssistantStatus) -> None:
        if status != self.status:
            logger.speaking_transition(f"assistant:{self.status.value}", status.value)
        self.status = status

    def greet(self) -> None:
        self._add_bot_message(WELCOME_MESSAGE)

    def toggle_listen(self) -> None:
        if self.status == AssistantStatus.LISTENING:
            self.recognizer.stop()
        elif self.status == AssistantStatus.IDLE:
            self.recognizer.start()

    def handle_result(self, transcript: str) -> None:
        """Answer a recognized question. Must be called from within the event loop."""
        self._query = asyncio.get_running_loop().create_task(self.handle_query(transcript))

    async def handle_query(self, query: str) -> None:
        if not query.strip():
            self._set_status(AssistantStatus.IDLE)
            return

        self._set_status(AssistantStatus.PROCESSING)
        self.conversation.append(AssistantMessage(author="user", text=query))
        target = self.target_language
        fetched = await self.orchestrator.guarded(
            ASSISTANT_CONSUMER, f"assistant answer in {target}",
            lambda: self.orchestrator.assistant_response(query, target),
        )
        if not fetched.current:
            return

        if fetched.error is not None:
            self._add_bot_message(fetched.error)
        else:
            self._add_bot_message(clean_for_speech(fetched.content))

    async def settle(self) -> None:
        """Wait for a scheduled answer, if any."""
        task = self._query
        if task is not None and not task.done():
            await asyncio.wait({task})

    def _add_bot_message(self, text: str) -> None:
        self.conversation.append(AssistantMessage(author="bot", text=text))
        if not text:
            self._set_status(AssistantStatus.IDLE)
            return
        self.synthesizer.cancel()
        self.synthesizer.speak(text, VOICE_HINTS[self.target_language])

    def close(self) -> None:
        self.recognizer.abort()
        self.synthesizer.cancel()
        self.orchestrator.invalidate(ASSISTANT_CONSUMER)
        self._set_status(AssistantStatus.IDLE)

    # Recognizer callbacks
    def _on_listen_start(self) -> None:
        self._set_status(AssistantStatus.LISTENING)

    def _on_listen_end(self) -> None:
        if self.status == AssistantStatus.LISTENING:
            self._set_status(AssistantStatus.IDLE)

    def _on_listen_error(self, reason: str) -> None:
        logger.speaking(f"✗ Assistant speech recognition error: {reason}")
        self._set_status(AssistantStatus.IDLE)

    # Synthesizer callbacks
    def _on_speak_start(self) -> None:
        self._set_status(AssistantStatus.SPEAKING)

    def _on_speak_end(self) -> None:
        self._set_status(AssistantStatus.IDLE)

    def _on_speak_error(self, reason: str) -> None:
        logger.speaking(f"✗ Assistant speech synthesis error: {reason}")
        self._set_status(AssistantStatus.IDLE)
