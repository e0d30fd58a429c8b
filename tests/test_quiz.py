import asyncio

from deutschlern.errors import TransportError
from deutschlern.models import GenerationKey, Skill
from deutschlern.quiz import (
    ASSESSMENT_LENGTH,
    LISTENING_QUIZ_LENGTH,
    QuizPhase,
    QuizSession,
    assessment_quiz,
    listening_quiz,
)
from deutschlern.speech import ScriptPlayer

from fakes import FakeSynthesizer, assessment_json, listening_json


def test_assessment_run_of_25_answers_completes_once(gateway, orchestrator):
    gateway.push(*[assessment_json(f"Satz {i}: Ich ___ hier.", "bin") for i in range(ASSESSMENT_LENGTH)])
    completions = []
    quiz = assessment_quiz(orchestrator, "A1", display_delay=0)
    quiz.on_complete = completions.append
    correct_pattern = [i % 3 != 0 for i in range(ASSESSMENT_LENGTH)]

    async def run():
        await quiz.start()
        for is_correct in correct_pattern:
            assert quiz.phase == QuizPhase.AWAITING_ANSWER
            assert quiz.submit_answer("bin" if is_correct else "bist") is not None
            await quiz.settle()
        # a 26th answer after completion changes nothing
        assert quiz.submit_answer("bin") is None

    asyncio.run(run())

    assert quiz.phase == QuizPhase.COMPLETE
    assert completions == [quiz]
    assert quiz.state.questions_answered == ASSESSMENT_LENGTH
    assert quiz.state.correct_answers == sum(correct_pattern)
    assert len(quiz.state.results) == ASSESSMENT_LENGTH
    assert len(gateway.calls) == ASSESSMENT_LENGTH


def test_second_answer_to_same_question_is_ignored(gateway, orchestrator):
    gateway.push(assessment_json(), assessment_json("Du ___ nett.", "bist"))
    quiz = QuizSession(orchestrator, "A1", Skill.ASSESSMENT, length=3, display_delay=0)

    async def run():
        await quiz.start()
        first = quiz.submit_answer("bist")
        second = quiz.submit_answer("bin")
        await quiz.settle()
        return first, second

    first, second = asyncio.run(run())

    assert first is not None and not first.is_correct
    assert second is None
    assert quiz.state.questions_answered == 1
    assert quiz.state.correct_answers == 0


def test_answer_while_awaiting_question_is_ignored(orchestrator):
    quiz = QuizSession(orchestrator, "A1", Skill.ASSESSMENT, length=3, display_delay=0)
    assert quiz.submit_answer("bin") is None
    assert quiz.state.questions_answered == 0


def test_failed_load_stays_awaiting_question_until_retried(gateway, orchestrator):
    gateway.push(TransportError("Connection error."), assessment_json())
    quiz = QuizSession(orchestrator, "A1", Skill.ASSESSMENT, length=3, display_delay=0)

    asyncio.run(quiz.start())

    assert quiz.phase == QuizPhase.AWAITING_QUESTION
    assert quiz.error == "Connection error."
    assert quiz.current_item is None
    assert len(gateway.calls) == 1

    asyncio.run(quiz.load_next())

    assert quiz.phase == QuizPhase.AWAITING_ANSWER
    assert quiz.error is None


def test_start_clears_history_for_level_and_skill(gateway, orchestrator):
    key = GenerationKey("B2", Skill.ASSESSMENT)
    orchestrator.history.record(key, "Old question from the last run")
    orchestrator.history.record(GenerationKey("B2", Skill.LISTENING), "Other skill")
    gateway.push(assessment_json())

    asyncio.run(assessment_quiz(orchestrator, "B2", display_delay=0).start())

    assert "Old question from the last run" not in gateway.prompts[0]
    assert orchestrator.history.items(GenerationKey("B2", Skill.LISTENING)) == ["Other skill"]


def test_display_delay_holds_answered_question(gateway, orchestrator):
    gateway.push(assessment_json(), assessment_json("Wir ___ hier.", "sind", options=["sind", "seid", "sein"]))
    quiz = QuizSession(orchestrator, "A1", Skill.ASSESSMENT, length=3, display_delay=0.05)

    async def run():
        await quiz.start()
        quiz.submit_answer("bin")
        await asyncio.sleep(0)
        # still showing the answered question during the delay
        assert quiz.selection is not None
        assert quiz.current_item.sentence == "Ich ___ Student."
        await quiz.settle()

    asyncio.run(run())

    assert quiz.phase == QuizPhase.AWAITING_ANSWER
    assert quiz.current_item.sentence == "Wir ___ hier."
    assert quiz.selection is None


def test_abandon_cancels_pending_advance(gateway, orchestrator):
    gateway.push(assessment_json())
    quiz = QuizSession(orchestrator, "A1", Skill.ASSESSMENT, length=3, display_delay=10)

    async def run():
        await quiz.start()
        quiz.submit_answer("bin")
        quiz.abandon()
        await asyncio.sleep(0)

    asyncio.run(run())

    assert len(gateway.calls) == 1


def test_restart_makes_in_flight_question_stale(gateway, orchestrator):
    quiz = QuizSession(orchestrator, "A1", Skill.ASSESSMENT, length=3, display_delay=0)

    async def run():
        gate = asyncio.Event()
        gateway.push((gate, assessment_json("Alte Frage ___.", "bin")), assessment_json("Neue Frage ___.", "bin"))
        first_start = asyncio.ensure_future(quiz.start())
        await asyncio.sleep(0)
        await quiz.start()
        gate.set()
        await first_start

    asyncio.run(run())

    assert quiz.current_item.sentence == "Neue Frage ___."


def test_listening_quiz_seven_of_ten_saves_one_report(gateway, orchestrator, report_store):
    gateway.push(*[listening_json(f"Skript {i}.") for i in range(LISTENING_QUIZ_LENGTH)])
    quiz = listening_quiz(orchestrator, "A2", report_store, display_delay=0)

    async def run():
        await quiz.start()
        for i in range(LISTENING_QUIZ_LENGTH):
            quiz.submit_answer("Brot" if i < 7 else "Milch")
            await quiz.settle()

    asyncio.run(run())

    assert quiz.is_complete
    reports = report_store.all()
    assert len(reports) == 1
    report = reports[0]
    assert (report.score, report.total) == (7, 10)
    assert report.title == "Listening Quiz - Level A2"
    assert quiz.report is report
    assert report_store.has_new_report

    assert report_store.get(report.id) is report
    assert report_store.delete([report.id]) == 1
    assert report_store.get(report.id) is None


def test_listening_quiz_plays_script_and_resets_translation(gateway, orchestrator, report_store):
    gateway.push(listening_json("Der Zug kommt um acht."), listening_json("Es regnet heute."))
    synthesizer = FakeSynthesizer(finish_immediately=False)
    quiz = listening_quiz(orchestrator, "A1", report_store, player=ScriptPlayer(synthesizer), display_delay=0)

    async def run():
        await quiz.start()
        assert quiz.play_script()
        # already playing
        assert not quiz.play_script()
        quiz.toggle_translation()
        assert quiz.show_translation
        quiz.submit_answer("Brot")
        await quiz.settle()

    asyncio.run(run())

    assert synthesizer.spoken == [("Der Zug kommt um acht.", "de-DE")]
    assert not quiz.show_translation
    assert quiz.current_item.script == "Es regnet heute."
