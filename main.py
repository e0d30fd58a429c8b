"""
DeutschLern - console prototype

Flow:
1. Pick a CEFR level (A1-C2), or the translator, voice assistant or reports.
2. Pick a skill: Reading/Writing lessons, Assessment quiz (25 questions),
   Listening quiz (10 questions, saved as a report), Speaking practice,
   Vocabulary flash cards.
3. Answers, transcripts and questions are typed; speech output is printed.

Setup (from repo root):

    python -m venv .venv
    source .venv/bin/activate   # or .venv\\Scripts\\activate on Windows
    pip install -e .

Ensure .env contains:
    OPENROUTER_API_KEY=sk-or-...

Then run:
    python main.py
"""

import asyncio
from typing import List, Optional

from deutschlern.assistant import Translator, VoiceAssistant
from deutschlern.config import load_settings
from deutschlern.gateway import ChatGateway
from deutschlern.logger import logger
from deutschlern.models import LEVELS, ListeningItem, Skill
from deutschlern.orchestrator import ContentOrchestrator
from deutschlern.prompts import TRANSLATION_TARGETS
from deutschlern.quiz import QuizSession
from deutschlern.reports import ReportStore, open_report_store
from deutschlern.session import SKILLS, LevelSession
from deutschlern.speech import GERMAN_VOICE, ScriptPlayer, SpeechRecognizer, SpeechSynthesizer


class TypedRecognizer(SpeechRecognizer):
    """Stands in for a microphone: the learner types what they said."""

    def __init__(self) -> None:
        super().__init__()
        self.active = False

    def start(self) -> None:
        self.active = True
        self.emit_start()

    def deliver(self, transcript: str) -> None:
        if not self.active:
            return
        self.active = False
        if transcript.strip():
            self.emit_result(transcript.strip())
        self.emit_end()

    def stop(self) -> None:
        if self.active:
            self.active = False
            self.emit_end()

    def abort(self) -> None:
        self.active = False


class PrintingSynthesizer(SpeechSynthesizer):
    """Prints what would be spoken."""

    def speak(self, text: str, voice_hint: str = GERMAN_VOICE) -> None:
        self.emit_start()
        print(f"  🔊 [{voice_hint}] {text}")
        self.emit_end()

    def cancel(self) -> None:
        pass


async def ask(prompt: str) -> str:
    # input() blocks, keep the event loop free for scheduled quiz advances
    return (await asyncio.to_thread(input, prompt)).strip()


async def choose(prompt: str, options: List[str]) -> Optional[int]:
    """Numbered menu. Returns the 0-based choice or None for back."""
    for i, option in enumerate(options, 1):
        print(f"  {i}. {option}")
    while True:
        answer = await ask(f"{prompt} (number, Enter = back): ")
        if not answer:
            return None
        if answer.isdigit() and 1 <= int(answer) <= len(options):
            return int(answer) - 1
        print("  Please enter one of the numbers above.")


# ---------------------------------------------------------------------------
# Level activities
# ---------------------------------------------------------------------------

async def run_quiz(quiz: QuizSession) -> None:
    while not quiz.is_complete:
        if quiz.error:
            print(f"\n❌ {quiz.error}")
            if (await ask("Press Enter to retry, q to leave: ")).lower() == "q":
                quiz.abandon()
                return
            await quiz.load_next()
            continue

        item = quiz.current_item
        if item is None:
            await quiz.load_next()
            continue

        print(f"\n── Question {quiz.question_number}/{quiz.length} "
              f"(score {quiz.state.correct_answers}) ──")
        if isinstance(item, ListeningItem):
            print(f"Script: {item.script}")
            print(f"        ({item.translation})")
            print(f"\n{item.question}  ({item.question_translation})")
            labels = [f"{o}  ({item.option_translation(o)})" for o in item.options]
        else:
            print(item.sentence)
            if item.translation:
                print(f"({item.translation})")
            labels = list(item.options)

        index = await choose("Your answer", labels)
        if index is None:
            quiz.abandon()
            return

        result = quiz.submit_answer(item.options[index])
        if result is not None:
            print("✓ Richtig!" if result.is_correct else f"✗ Falsch, correct: {item.correct_answer}")
        await quiz.settle()

    print(f"\n🏁 Finished: {quiz.state.correct_answers}/{quiz.length} correct")
    report = getattr(quiz, "report", None)
    if report is not None:
        print(f"📄 Report saved: {report.title}")


async def run_speaking(session: LevelSession, recognizer: TypedRecognizer) -> None:
    practice = session.speaking
    while True:
        if practice.error and practice.item is None:
            print(f"\n❌ {practice.error}")
        elif practice.item is not None:
            print(f"\nSay: {practice.item.sentence}")
            if practice.item.translation:
                print(f"     ({practice.item.translation})")

        command = (await ask("Enter = speak, n = new sentence, q = back: ")).lower()
        if command == "q":
            practice.close()
            return
        if command == "n":
            await practice.load_sentence()
            continue

        practice.toggle_listen()
        if not recognizer.active:
            continue
        recognizer.deliver(await ask("🎤 (type what you said): "))
        await practice.settle()

        if practice.error:
            print(f"❌ {practice.error}")
        if practice.feedback is not None:
            feedback = practice.feedback
            print(f"\nScore: {feedback.score}/100. {feedback.overall_comment}")
            for word in feedback.analyzed_words:
                note = f" - {word.comment}" if word.comment else ""
                print(f"  {word.word}: {word.status}{note}")
            practice.try_again()


async def run_vocabulary(session: LevelSession) -> None:
    trainer = session.vocabulary
    while True:
        if trainer.error:
            print(f"\n❌ {trainer.error}")
        elif trainer.card is not None:
            card = trainer.card
            if trainer.is_flipped:
                print(f"\n{card.word} = {card.translation}")
                if card.example_sentence:
                    print(f"  {card.example_sentence}\n  ({card.example_translation})")
            else:
                print(f"\n[ {card.word} ]")

        command = (await ask("f = flip, s = speak, n = noun, a = adjective, q = back: ")).lower()
        if command == "q":
            trainer.close()
            return
        if command == "f":
            trainer.flip()
        elif command == "s":
            trainer.speak_word()
        elif command in ("n", "a"):
            await trainer.next_card("noun" if command == "n" else "adjective")


async def run_level(
    orchestrator: ContentOrchestrator,
    level_id: str,
    report_store: ReportStore,
    recognizer: TypedRecognizer,
    player: ScriptPlayer,
    display_delay: float,
) -> None:
    session = LevelSession(orchestrator, level_id, report_store, recognizer, player, display_delay)
    logger.separator(f"Level {session.level.id}")
    while True:
        print(f"\n{session.level.id} - {session.level.title}: {session.level.description}")
        index = await choose("Skill", [skill.value for skill in SKILLS])
        if index is None:
            session.close()
            return

        skill = SKILLS[index]
        await session.select_skill(skill)
        if skill in (Skill.READING, Skill.WRITING):
            if session.content is not None:
                print(f"\n{session.content.text}")
        elif skill == Skill.ASSESSMENT:
            await run_quiz(session.assessment)
        elif skill == Skill.LISTENING:
            await run_quiz(session.listening)
        elif skill == Skill.SPEAKING:
            await run_speaking(session, recognizer)
        elif skill == Skill.VOCABULARY:
            await run_vocabulary(session)


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------

async def run_translator(orchestrator: ContentOrchestrator) -> None:
    index = await choose("Translate into", list(TRANSLATION_TARGETS))
    if index is None:
        return
    translator = Translator(orchestrator, TRANSLATION_TARGETS[index])
    while True:
        text = await ask("German text (Enter = back): ")
        if not text:
            return
        result = await translator.translate(text)
        print(f"→ {result}" if result is not None else f"❌ {translator.error}")


async def run_assistant(orchestrator: ContentOrchestrator) -> None:
    recognizer = TypedRecognizer()
    assistant = VoiceAssistant(orchestrator, recognizer, PrintingSynthesizer())
    assistant.greet()
    while True:
        assistant.toggle_listen()
        question = await ask("🎤 Ask (Enter = back): ")
        if not question:
            assistant.close()
            return
        recognizer.deliver(question)
        await assistant.settle()


def show_reports(report_store: ReportStore) -> None:
    reports = report_store.all()
    report_store.mark_as_read()
    if not reports:
        print("\nNo reports yet. Finish a listening quiz to create one.")
        return
    print()
    for report in reports:
        print(f"  {report.created_at[:16].replace('T', ' ')}  {report.title}: "
              f"{report.score}/{report.total}")


async def main() -> None:
    logger.separator("Application Starting")
    settings = load_settings()
    orchestrator = ContentOrchestrator(ChatGateway(settings))
    report_store = open_report_store(settings)
    recognizer = TypedRecognizer()
    player = ScriptPlayer(PrintingSynthesizer())
    logger.success("Ready for user interaction")

    menu = [f"{level.id} - {level.title}" for level in LEVELS] + ["Translator", "Voice assistant", "Reports"]
    while True:
        new_marker = " (new report!)" if report_store.has_new_report else ""
        print(f"\n🇩🇪 DeutschLern{new_marker}")
        index = await choose("Choose", menu)
        if index is None:
            break
        if index < len(LEVELS):
            await run_level(orchestrator, LEVELS[index].id, report_store, recognizer, player,
                            settings.display_delay)
        elif menu[index] == "Translator":
            await run_translator(orchestrator)
        elif menu[index] == "Voice assistant":
            await run_assistant(orchestrator)
        else:
            show_reports(report_store)

    logger.separator("Application Closed")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, EOFError):
        print("\nTschüss!")
