import asyncio

from deutschlern.errors import INVALID_JSON_MESSAGE, ApiError
from deutschlern.models import SpeakingStatus
from deutschlern.speaking import SpeakingPractice

from fakes import FakeRecognizer, feedback_json, speaking_json


def make_practice(orchestrator):
    recognizer = FakeRecognizer()
    return SpeakingPractice(orchestrator, recognizer, "A1"), recognizer


def test_full_cycle_idle_listening_processing_feedback_idle(gateway, orchestrator):
    gateway.push(speaking_json(), feedback_json(score=85))
    practice, recognizer = make_practice(orchestrator)

    async def run():
        await practice.load_sentence()
        assert practice.status == SpeakingStatus.IDLE

        practice.toggle_listen()
        assert practice.status == SpeakingStatus.LISTENING
        assert recognizer.started == 1

        recognizer.emit_result("Ich wohne in Berlin")
        assert practice.status == SpeakingStatus.PROCESSING
        recognizer.emit_end()
        assert practice.status == SpeakingStatus.PROCESSING
        await practice.settle()

    asyncio.run(run())

    assert practice.status == SpeakingStatus.FEEDBACK
    assert practice.transcript == "Ich wohne in Berlin"
    assert practice.feedback.score == 85

    practice.try_again()
    assert practice.status == SpeakingStatus.IDLE
    assert practice.transcript == ""
    assert practice.feedback is None


def test_failed_analysis_still_reaches_feedback(gateway, orchestrator):
    gateway.push(speaking_json("Das ist mein Hund."), ApiError("Rate limit exceeded"))
    practice, recognizer = make_practice(orchestrator)

    async def run():
        await practice.load_sentence()
        practice.toggle_listen()
        recognizer.emit_result("das ist mein hund")
        await practice.settle()

    asyncio.run(run())

    assert practice.status == SpeakingStatus.FEEDBACK
    feedback = practice.feedback
    assert feedback.score == 0
    assert feedback.overall_comment == "Rate limit exceeded"
    assert [w.word for w in feedback.analyzed_words] == ["Das", "ist", "mein", "Hund."]
    assert all(w.status == "incorrect" for w in feedback.analyzed_words)


def test_silence_returns_to_idle_with_feedback_unchanged(gateway, orchestrator):
    gateway.push(speaking_json())
    practice, recognizer = make_practice(orchestrator)
    asyncio.run(practice.load_sentence())

    practice.toggle_listen()
    practice.toggle_listen()

    assert recognizer.stopped == 1
    assert practice.status == SpeakingStatus.IDLE
    assert practice.feedback is None


def test_recognition_error_is_shown_and_returns_to_idle(gateway, orchestrator):
    gateway.push(speaking_json())
    practice, recognizer = make_practice(orchestrator)
    asyncio.run(practice.load_sentence())

    practice.toggle_listen()
    recognizer.emit_error("not-allowed")

    assert practice.status == SpeakingStatus.IDLE
    assert "not-allowed" in practice.error


def test_listen_ignored_while_processing(gateway, orchestrator):
    practice, recognizer = make_practice(orchestrator)
    practice.status = SpeakingStatus.PROCESSING

    practice.toggle_listen()

    assert recognizer.started == 0
    assert recognizer.stopped == 0


def test_failed_sentence_load_keeps_idle_and_blocks_listening(gateway, orchestrator):
    gateway.push(ApiError("Service unavailable", status_code=503))
    practice, recognizer = make_practice(orchestrator)

    asyncio.run(practice.load_sentence())
    practice.toggle_listen()

    assert practice.error == "Service unavailable"
    assert practice.item is None
    assert recognizer.started == 0


def test_close_aborts_recognizer(gateway, orchestrator):
    practice, recognizer = make_practice(orchestrator)
    practice.close()
    assert recognizer.aborted == 1


def test_infinite_score_still_reaches_feedback(gateway, orchestrator):
    gateway.push(speaking_json(), '{"overallComment": "ok", "score": 1e999, "analyzedWords": []}')
    practice, recognizer = make_practice(orchestrator)

    async def run():
        await practice.load_sentence()
        practice.toggle_listen()
        recognizer.emit_result("Ich wohne in Berlin")
        await practice.settle()

    asyncio.run(run())

    assert practice.status == SpeakingStatus.FEEDBACK
    assert practice.feedback.score == 0
    assert practice.feedback.overall_comment == INVALID_JSON_MESSAGE


def test_new_sentence_drops_analysis_in_flight(gateway, orchestrator):
    practice, recognizer = make_practice(orchestrator)

    async def run():
        gate = asyncio.Event()
        gateway.push(speaking_json(), (gate, feedback_json(score=90)), speaking_json("Das ist mein Hund."))
        await practice.load_sentence()
        practice.toggle_listen()
        recognizer.emit_result("Ich wohne in Berlin")
        await asyncio.sleep(0)

        await practice.load_sentence()
        gate.set()
        await practice.settle()

    asyncio.run(run())

    assert practice.item.sentence == "Das ist mein Hund."
    assert practice.status == SpeakingStatus.IDLE
    assert practice.feedback is None


def test_close_drops_analysis_in_flight(gateway, orchestrator):
    practice, recognizer = make_practice(orchestrator)

    async def run():
        gate = asyncio.Event()
        gateway.push(speaking_json(), (gate, feedback_json()))
        await practice.load_sentence()
        practice.toggle_listen()
        recognizer.emit_result("Ich wohne in Berlin")
        await asyncio.sleep(0)

        practice.close()
        gate.set()
        await practice.settle()

    asyncio.run(run())

    assert practice.status == SpeakingStatus.IDLE
    assert practice.feedback is None
