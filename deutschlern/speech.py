"""
Speech recognition / synthesis collaborators.

The engines themselves are external; these classes only fix the
interface the state machines drive. Each collaborator is single-instance
and non-reentrant: starting a new operation implicitly cancels the old
one through the engine's own abort/cancel.

Callbacks are plain attributes, assigned by the owner:

    recognizer.on_result = practice.handle_result
"""

import re
from abc import ABC, abstractmethod
from typing import Callable, Optional

from .errors import SynthesisError
from .logger import logger
from .models import AudioStatus

GERMAN_VOICE = "de-DE"

Callback = Optional[Callable[[], None]]


class SpeechRecognizer(ABC):
    """Speech-to-text engine. Emits on_start, on_result, on_end, on_error."""

    lang: str = GERMAN_VOICE

    def __init__(self) -> None:
        self.on_start: Callback = None
        self.on_result: Optional[Callable[[str], None]] = None
        self.on_end: Callback = None
        self.on_error: Optional[Callable[[str], None]] = None

    @abstractmethod
    def start(self) -> None:
        """Begin capturing speech."""

    @abstractmethod
    def stop(self) -> None:
        """Stop capturing and deliver whatever was heard."""

    @abstractmethod
    def abort(self) -> None:
        """Stop capturing and discard the result."""

    # Engines call these to notify the owner
    def emit_start(self) -> None:
        if self.on_start:
            self.on_start()

    def emit_result(self, transcript: str) -> None:
        if self.on_result:
            self.on_result(transcript)

    def emit_end(self) -> None:
        if self.on_end:
            self.on_end()

    def emit_error(self, reason: str) -> None:
        if self.on_error:
            self.on_error(reason)


class SpeechSynthesizer(ABC):
    """Text-to-speech engine. Emits on_start, on_end, on_error."""

    def __init__(self) -> None:
        self.on_start: Callback = None
        self.on_end: Callback = None
        self.on_error: Optional[Callable[[str], None]] = None

    @abstractmethod
    def speak(self, text: str, voice_hint: str = GERMAN_VOICE) -> None:
        """Speak text; implementations cancel anything still speaking first."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop speaking immediately."""

    def emit_start(self) -> None:
        if self.on_start:
            self.on_start()

    def emit_end(self) -> None:
        if self.on_end:
            self.on_end()

    def emit_error(self, reason: str) -> None:
        if self.on_error:
            self.on_error(reason)


def clean_for_speech(text: str) -> str:
    """Strip symbols TTS engines read aloud and collapse whitespace."""
    return re.sub(r"\s+", " ", re.sub(r"[*:]", " ", text)).strip()


class ScriptPlayer:
    """Plays listening scripts and tracks whether audio is playing."""

    def __init__(self, synthesizer: SpeechSynthesizer):
        self.synthesizer = synthesizer
        self.status = AudioStatus.IDLE
        self.error: Optional[str] = None
        synthesizer.on_start = self._on_start
        synthesizer.on_end = self._on_end
        synthesizer.on_error = self._on_error

    def play(self, text: str) -> bool:
        """Speak text unless something is already playing. Returns True if started."""
        if not text or self.status == AudioStatus.PLAYING:
            return False
        self.error = None
        self.synthesizer.cancel()
        self.synthesizer.speak(text, GERMAN_VOICE)
        return True

    def stop(self) -> None:
        self.synthesizer.cancel()
        self.status = AudioStatus.IDLE

    def _on_start(self) -> None:
        self.status = AudioStatus.PLAYING

    def _on_end(self) -> None:
        self.status = AudioStatus.IDLE

    def _on_error(self, reason: str) -> None:
        error = SynthesisError(f"Speech synthesis error: {reason}")
        logger.speaking(f"✗ {error.message}")
        self.error = error.message
        self.status = AudioStatus.IDLE
