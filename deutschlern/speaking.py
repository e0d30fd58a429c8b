"""
Speaking practice: read a generated sentence aloud, get pronunciation feedback.

    IDLE --recognizer starts--> LISTENING
    LISTENING --transcript--> PROCESSING --analysis done or failed--> FEEDBACK
    LISTENING --recognizer ends / errors--> IDLE
    FEEDBACK --try_again()--> IDLE

PROCESSING always ends in FEEDBACK: a failed analysis produces a
zero-score feedback instead of leaving the learner stuck. Only a new
sentence or close() drops an analysis still in flight.
"""

import asyncio
from typing import Optional

from .errors import RecognitionError
from .logger import logger
from .models import PronunciationFeedback, Skill, SpeakingItem, SpeakingStatus
from .orchestrator import ContentOrchestrator
from .speech import SpeechRecognizer

SPEAKING_CONSUMER = "speaking"
ANALYSIS_CONSUMER = "speaking:analysis"


class SpeakingPractice:
    def __init__(self, orchestrator: ContentOrchestrator, recognizer: SpeechRecognizer, level_id: str):
        self.orchestrator = orchestrator
        self.recognizer = recognizer
        self.level_id = level_id

        self.status = SpeakingStatus.IDLE
        self.item: Optional[SpeakingItem] = None
        self.transcript = ""
        self.feedback: Optional[PronunciationFeedback] = None
        self.error: Optional[str] = None
        self.is_loading = False
        self._analysis: Optional[asyncio.Task] = None

        recognizer.on_start = self.handle_start
        recognizer.on_end = self.handle_end
        recognizer.on_error = self.handle_error
        recognizer.on_result = self.handle_result

    def _set_status(self, status: SpeakingStatus) -> None:
        if status != self.status:
            logger.speaking_transition(self.status.value, status.value)
        self.status = status

    async def load_sentence(self) -> None:
        """Fetch a new sentence to practise; resets the machine to IDLE."""
        self.orchestrator.invalidate(ANALYSIS_CONSUMER)
        self._set_status(SpeakingStatus.IDLE)
        self.transcript = ""
        self.feedback = None
        self.error = None
        self.is_loading = True

        fetched = await self.orchestrator.fetch(SPEAKING_CONSUMER, self.level_id, Skill.SPEAKING)
        if not fetched.current:
            return

        self.is_loading = False
        if fetched.error is not None:
            self.item = None
            self.error = fetched.error
            return
        self.item = fetched.content

    def toggle_listen(self) -> None:
        """Start listening from IDLE, stop from LISTENING, otherwise nothing."""
        if self.status == SpeakingStatus.LISTENING:
            self.recognizer.stop()
        elif self.status == SpeakingStatus.IDLE:
            if self.item is None:
                logger.debug("No sentence loaded, not listening")
                return
            self.feedback = None
            self.transcript = ""
            self.error = None
            self.recognizer.start()
        else:
            logger.debug(f"toggle_listen ignored while {self.status.value}")

    # Recognizer callbacks
    def handle_start(self) -> None:
        self._set_status(SpeakingStatus.LISTENING)

    def handle_end(self) -> None:
        # a result moves us on to PROCESSING before the engine reports the end
        if self.status == SpeakingStatus.LISTENING:
            self._set_status(SpeakingStatus.IDLE)

    def handle_error(self, reason: str) -> None:
        error = RecognitionError(f"Speech recognition error: {reason}")
        logger.speaking(f"✗ {error.message}")
        self.error = error.message
        self._set_status(SpeakingStatus.IDLE)

    def handle_result(self, transcript: str) -> None:
        """Store the transcript and analyze it. Must be called from within the event loop."""
        if self.status != SpeakingStatus.LISTENING or self.item is None:
            logger.debug(f"Transcript ignored while {self.status.value}")
            return
        self.transcript = transcript
        self._set_status(SpeakingStatus.PROCESSING)
        self._analysis = asyncio.get_running_loop().create_task(self.analyze())

    async def analyze(self) -> Optional[PronunciationFeedback]:
        """Analyze the transcript. Returns None when a new sentence or close() superseded it."""
        self._set_status(SpeakingStatus.PROCESSING)
        sentence = self.item.sentence if self.item else ""
        transcript = self.transcript
        fetched = await self.orchestrator.guarded(
            ANALYSIS_CONSUMER,
            "pronunciation",
            lambda: self.orchestrator.analyze_pronunciation(sentence, transcript),
        )
        if not fetched.current:
            return None

        if fetched.error is not None:
            logger.speaking(f"✗ Pronunciation analysis failed: {fetched.error}")
            feedback = PronunciationFeedback.failed(sentence, fetched.error)
        else:
            feedback = fetched.content
        self.feedback = feedback
        self._set_status(SpeakingStatus.FEEDBACK)
        return feedback

    async def settle(self) -> None:
        """Wait for a scheduled analysis, if any."""
        task = self._analysis
        if task is not None and not task.done():
            await asyncio.wait({task})

    def try_again(self) -> None:
        if self.status != SpeakingStatus.FEEDBACK:
            return
        self.transcript = ""
        self.feedback = None
        self._set_status(SpeakingStatus.IDLE)

    def close(self) -> None:
        """Leave the practice: abort recognition and drop in-flight sentences."""
        self.recognizer.abort()
        self.orchestrator.invalidate(SPEAKING_CONSUMER)
        self.orchestrator.invalidate(ANALYSIS_CONSUMER)
        self.is_loading = False
        self._set_status(SpeakingStatus.IDLE)
