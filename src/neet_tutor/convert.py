"""Translation between the internal question shape and Supabase rows.

Internally a question holds ``options`` (four strings) and ``correct_answer``
as an index. Remote rows and create payloads use ``option_a``..``option_d``
and a single letter.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from neet_tutor.errors import InvalidAnswerError
from neet_tutor.models import Question, QuestionInput, parse_timestamp, utcnow

ANSWER_LETTERS = ("A", "B", "C", "D")
OPTION_COLUMNS = ("option_a", "option_b", "option_c", "option_d")


@dataclass(frozen=True)
class LetterResult:
    index: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def parse_answer_letter(letter) -> LetterResult:
    """Map "A".."D" (any case, surrounding whitespace ignored) to 0..3."""
    normalized = str(letter).strip().upper() if letter is not None else ""
    if normalized in ANSWER_LETTERS:
        return LetterResult(index=ANSWER_LETTERS.index(normalized))
    return LetterResult(error=f"invalid answer letter {letter!r}, expected one of A, B, C, D")


def answer_index(letter) -> int:
    result = parse_answer_letter(letter)
    if not result.ok:
        raise InvalidAnswerError(result.error)
    return result.index


def answer_letter(index: int) -> str:
    if not isinstance(index, int) or not 0 <= index < len(ANSWER_LETTERS):
        raise InvalidAnswerError(f"answer index {index!r} out of range 0-3")
    return ANSWER_LETTERS[index]


def input_to_row(payload: QuestionInput) -> dict:
    """Build the remote row for a create payload. The letter must be valid."""
    letter = answer_letter(answer_index(payload.correct_answer))
    row = {
        "chapter_id": payload.chapter_id,
        "subtopic_id": payload.subtopic_id or None,
        "question": payload.question,
        "correct_answer": letter,
        "explanation": payload.explanation or None,
        "difficulty": payload.difficulty or None,
    }
    row.update(zip(OPTION_COLUMNS, payload.options))
    return row


def question_from_input(payload: QuestionInput, question_id: int,
                        created_at: Optional[datetime] = None) -> Question:
    return Question(
        id=question_id,
        chapter_id=payload.chapter_id,
        question=payload.question,
        options=payload.options,
        correct_answer=answer_index(payload.correct_answer),
        explanation=payload.explanation or None,
        difficulty=payload.difficulty or None,
        subtopic_id=payload.subtopic_id or None,
        created_at=created_at or utcnow(),
    )


def question_from_row(row: dict) -> Question:
    """Translate a ``questions`` row. Raises InvalidAnswerError on a bad letter."""
    return Question(
        id=int(row["id"]),
        chapter_id=int(row["chapter_id"]),
        question=row["question"],
        options=[row.get(col) or "" for col in OPTION_COLUMNS],
        correct_answer=answer_index(row.get("correct_answer")),
        explanation=row.get("explanation"),
        difficulty=row.get("difficulty"),
        subtopic_id=row.get("subtopic_id"),
        created_at=parse_timestamp(row.get("created_at")) or utcnow(),
    )


def question_to_row(question: Question) -> dict:
    row = {
        "id": question.id,
        "chapter_id": question.chapter_id,
        "subtopic_id": question.subtopic_id,
        "question": question.question,
        "correct_answer": answer_letter(question.correct_answer),
        "explanation": question.explanation,
        "difficulty": question.difficulty,
        "created_at": question.created_at.isoformat(),
    }
    row.update(zip(OPTION_COLUMNS, question.options))
    return row
