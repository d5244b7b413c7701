# tests/test_quiz.py
import pytest

from neet_tutor.models import QuizAnswer
from neet_tutor.quiz import (
    NEET_SCORING, calculate_results, calculate_score, finish_quiz,
    question_score, record_quiz_answer, start_quiz,
)

from conftest import make_input


def _load_chapter(storage, count=4, chapter_id=1):
    return storage.create_bulk_questions([make_input(chapter_id=chapter_id, text=f"Q{n}") for n in range(count)])


def test_neet_scoring_marks():
    assert NEET_SCORING == {"correct": 4, "incorrect": -1, "unanswered": 0}


def test_question_score(offline_storage):
    q = _load_chapter(offline_storage, count=1)[0]
    assert question_score(q, 2) == 4
    assert question_score(q, 0) == -1
    assert question_score(q, None) == 0


def test_start_quiz_empty_chapter(offline_storage):
    assert start_quiz(offline_storage, chapter_id=5) == (None, [])


def test_start_quiz(offline_storage):
    _load_chapter(offline_storage, count=3)
    session, questions = start_quiz(offline_storage, chapter_id=1)
    assert session.total_questions == 3
    assert len(questions) == 3
    assert not session.is_completed


def test_record_quiz_answer_advances_session(offline_storage):
    _load_chapter(offline_storage, count=2)
    session, questions = start_quiz(offline_storage, chapter_id=1)
    assert record_quiz_answer(offline_storage, session.id, questions[0], 2) is True
    assert record_quiz_answer(offline_storage, session.id, questions[1], 1) is False
    updated = offline_storage.get_quiz_session(session.id)
    assert updated.current_question == 2
    assert updated.score == 3
    assert len(offline_storage.get_quiz_answers_by_session(session.id)) == 2


def test_record_quiz_answer_unknown_session(offline_storage):
    q = _load_chapter(offline_storage, count=1)[0]
    with pytest.raises(KeyError):
        record_quiz_answer(offline_storage, 999, q, 2)


def test_calculate_results_and_score():
    answers = [
        QuizAnswer(id=1, session_id=1, question_id=1, selected_answer=2, is_correct=True),
        QuizAnswer(id=2, session_id=1, question_id=2, selected_answer=2, is_correct=True),
        QuizAnswer(id=3, session_id=1, question_id=3, selected_answer=0, is_correct=False),
        QuizAnswer(id=4, session_id=1, question_id=4, selected_answer=None, is_correct=False),
    ]
    results = calculate_results(answers)
    assert results == {"correct": 2, "incorrect": 1, "unanswered": 1}
    assert calculate_score(results) == 7


def test_finish_quiz_updates_stats(offline_storage):
    _load_chapter(offline_storage, count=4)
    before = offline_storage.get_user_stats()
    session, questions = start_quiz(offline_storage, chapter_id=1)
    for q, selected in zip(questions, [2, 2, 0, None]):
        record_quiz_answer(offline_storage, session.id, q, selected)

    summary = finish_quiz(offline_storage, session.id)
    assert summary["correct"] == 2
    assert summary["incorrect"] == 1
    assert summary["unanswered"] == 1
    assert summary["score"] == 7
    assert summary["max_score"] == 16
    assert summary["percentage"] == 50.0

    assert offline_storage.get_quiz_session(session.id).is_completed
    after = offline_storage.get_user_stats()
    assert after.total_questions_solved == before.total_questions_solved + 3
    assert after.total_correct_answers == before.total_correct_answers + 2


def test_finish_quiz_unknown_session(offline_storage):
    with pytest.raises(KeyError):
        finish_quiz(offline_storage, 42)


def test_finish_quiz_tracks_chapter_completion(offline_storage):
    questions = _load_chapter(offline_storage, count=4)
    assert offline_storage.get_chapter(1).completed_questions == 0

    session, _ = start_quiz(offline_storage, chapter_id=1)
    record_quiz_answer(offline_storage, session.id, questions[0], 2)
    record_quiz_answer(offline_storage, session.id, questions[1], 0)
    record_quiz_answer(offline_storage, session.id, questions[2], None)
    finish_quiz(offline_storage, session.id)
    assert offline_storage.get_chapter(1).completed_questions == 2

    # A second quiz counts only questions not answered before
    session, _ = start_quiz(offline_storage, chapter_id=1)
    record_quiz_answer(offline_storage, session.id, questions[0], 2)
    record_quiz_answer(offline_storage, session.id, questions[3], 1)
    finish_quiz(offline_storage, session.id)
    assert offline_storage.get_chapter(1).completed_questions == 3
