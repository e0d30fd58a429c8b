import asyncio

import pytest

from deutschlern.errors import ApiError
from deutschlern.models import GenerationKey, Skill, SpeakingStatus
from deutschlern.quiz import QuizPhase
from deutschlern.session import LevelSession, VocabularyTrainer

from fakes import FakeRecognizer, assessment_json, speaking_json, vocabulary_json


def make_session(orchestrator, report_store, level_id="A1"):
    return LevelSession(orchestrator, level_id, report_store, FakeRecognizer(), display_delay=0)


def test_markdown_skill_shows_lesson(gateway, orchestrator, report_store):
    gateway.push("## Paragraph\nIch heiße Lea.")
    session = make_session(orchestrator, report_store)

    asyncio.run(session.select_skill(Skill.READING))

    assert session.content.text.startswith("## Paragraph")
    assert not session.is_loading


def test_markdown_error_becomes_error_content(gateway, orchestrator, report_store):
    gateway.push(ApiError("Model not found"))
    session = make_session(orchestrator, report_store)

    asyncio.run(session.select_skill(Skill.WRITING))

    assert session.content.is_error
    assert "Model not found" in session.content.text


def test_late_lesson_never_overwrites_newer_selection(gateway, orchestrator, report_store):
    session = make_session(orchestrator, report_store)

    async def run():
        gate = asyncio.Event()
        gateway.push((gate, "Reading lesson"), "Writing lesson")
        slow = asyncio.ensure_future(session.select_skill(Skill.READING))
        await asyncio.sleep(0)
        await session.select_skill(Skill.WRITING)
        gate.set()
        await slow

    asyncio.run(run())

    assert session.selected_skill == Skill.WRITING
    assert session.content.text == "Writing lesson"


def test_switching_to_quiz_discards_in_flight_lesson(gateway, orchestrator, report_store):
    session = make_session(orchestrator, report_store)

    async def run():
        gate = asyncio.Event()
        gateway.push((gate, "Reading lesson"), assessment_json())
        slow = asyncio.ensure_future(session.select_skill(Skill.READING))
        await asyncio.sleep(0)
        await session.select_skill(Skill.ASSESSMENT)
        gate.set()
        await slow

    asyncio.run(run())

    assert session.content is None
    assert session.assessment.phase == QuizPhase.AWAITING_ANSWER


def test_leaving_speaking_aborts_recognition(gateway, orchestrator, report_store):
    gateway.push(speaking_json(), "Lesson")
    recognizer = FakeRecognizer()
    session = LevelSession(orchestrator, "A1", report_store, recognizer, display_delay=0)

    asyncio.run(session.select_skill(Skill.SPEAKING))
    assert session.speaking.status == SpeakingStatus.IDLE
    assert session.speaking.item.sentence == "Ich wohne in Berlin."

    aborted_before = recognizer.aborted
    asyncio.run(session.select_skill(Skill.READING))
    assert recognizer.aborted == aborted_before + 1


def test_unknown_level_rejected(orchestrator, report_store):
    with pytest.raises(ValueError):
        make_session(orchestrator, report_store, level_id="Z9")


def test_vocabulary_trainer_starts_with_noun_and_clears_history(gateway, orchestrator):
    orchestrator.history.record(GenerationKey("A1", Skill.VOCABULARY, "adjective"), "schön")
    gateway.push(vocabulary_json("Tisch", "table"), vocabulary_json("Stuhl", "chair"))
    trainer = VocabularyTrainer(orchestrator, "A1")

    asyncio.run(trainer.start())

    assert trainer.card.word == "Tisch"
    assert trainer.category == "noun"
    assert orchestrator.history.bucket_ids() == ["A1-Vocabulary-noun"]

    trainer.flip()
    assert trainer.is_flipped
    asyncio.run(trainer.next_card("noun"))
    assert not trainer.is_flipped
    assert '"Tisch"' in gateway.prompts[1]


def test_vocabulary_trainer_error_and_bad_category(gateway, orchestrator):
    gateway.push(ApiError("Rate limited"))
    trainer = VocabularyTrainer(orchestrator, "B1")

    asyncio.run(trainer.next_card("adjective"))

    assert trainer.error == "Rate limited"
    assert trainer.card is None
    with pytest.raises(ValueError):
        asyncio.run(trainer.next_card("verb"))
