"""Quiz engine: chapter quizzes with NEET marking."""
import logging
from typing import Optional

from neet_tutor.models import Question, QuizAnswer, QuizSession

logger = logging.getLogger(__name__)

# Marks per question outcome in the NEET exam
NEET_SCORING = {"correct": 4, "incorrect": -1, "unanswered": 0}


def question_score(question: Question, selected: Optional[int]) -> int:
    if selected is None:
        return NEET_SCORING["unanswered"]
    if selected == question.correct_answer:
        return NEET_SCORING["correct"]
    return NEET_SCORING["incorrect"]


def start_quiz(storage, chapter_id: int) -> tuple[Optional[QuizSession], list[Question]]:
    """Open a session over every question in the chapter.

    Returns (None, []) when the chapter has no questions yet.
    """
    questions = storage.get_questions_by_chapter(chapter_id)
    if not questions:
        return None, []
    session = storage.create_quiz_session(chapter_id=chapter_id, total_questions=len(questions))
    logger.info("Started quiz session %d on chapter %d (%d questions)", session.id, chapter_id, len(questions))
    return session, questions


def record_quiz_answer(storage, session_id: int, question: Question, selected: Optional[int],
                       time_spent_seconds: int = 0) -> bool:
    """Store the answer and advance the session. Returns whether it was correct."""
    session = storage.get_quiz_session(session_id)
    if session is None:
        raise KeyError(f"quiz session {session_id} not found")
    is_correct = selected is not None and selected == question.correct_answer
    storage.create_quiz_answer(
        session_id=session_id,
        question_id=question.id,
        selected_answer=selected,
        is_correct=is_correct,
        time_spent_seconds=time_spent_seconds,
    )
    storage.update_quiz_session(session_id, {
        "current_question": session.current_question + 1,
        "score": session.score + question_score(question, selected),
    })
    return is_correct


def calculate_results(answers: list[QuizAnswer]) -> dict:
    correct = sum(1 for a in answers if a.selected_answer is not None and a.is_correct)
    unanswered = sum(1 for a in answers if a.selected_answer is None)
    return {
        "correct": correct,
        "incorrect": len(answers) - correct - unanswered,
        "unanswered": unanswered,
    }


def calculate_score(results: dict) -> int:
    """NEET marks for a results dict from calculate_results."""
    return sum(results[outcome] * marks for outcome, marks in NEET_SCORING.items())


def _update_chapter_completion(storage, chapter_id: int) -> None:
    """Set completed_questions to the distinct chapter questions ever answered."""
    chapter_questions = {q.id for q in storage.get_questions_by_chapter(chapter_id)}
    answered = {
        a.question_id
        for s in storage.get_quiz_sessions_by_chapter(chapter_id)
        for a in storage.get_quiz_answers_by_session(s.id)
        if a.selected_answer is not None
    }
    completed = len(answered & chapter_questions)
    chapter = storage.get_chapter(chapter_id)
    if chapter is not None and chapter.completed_questions != completed:
        storage.update_chapter(chapter_id, {"completed_questions": completed})


def finish_quiz(storage, session_id: int) -> dict:
    """Close the session and fold its answers into the user's stats."""
    session = storage.get_quiz_session(session_id)
    if session is None:
        raise KeyError(f"quiz session {session_id} not found")
    answers = storage.get_quiz_answers_by_session(session_id)
    results = calculate_results(answers)
    score = calculate_score(results)
    storage.update_quiz_session(session_id, {"is_completed": True, "score": score})

    answered = results["correct"] + results["incorrect"]
    stats = storage.get_user_stats()
    storage.update_user_stats({
        "total_questions_solved": stats.total_questions_solved + answered,
        "total_correct_answers": stats.total_correct_answers + results["correct"],
    })

    _update_chapter_completion(storage, session.chapter_id)

    max_score = session.total_questions * NEET_SCORING["correct"]
    percentage = round(results["correct"] / session.total_questions * 100, 1) if session.total_questions else 0.0
    logger.info("Finished quiz session %d: %d/%d marks", session_id, score, max_score)
    return {
        "session_id": session_id,
        "chapter_id": session.chapter_id,
        "total": session.total_questions,
        **results,
        "score": score,
        "max_score": max_score,
        "percentage": percentage,
    }
