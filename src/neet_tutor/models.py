"""Data classes for the study domain model.

Attributes are snake_case. ``to_dict`` produces the camelCase shape used in
the JSON snapshots and shown to the user; ``from_dict`` reads it back.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value) -> Optional[datetime]:
    """Parse an ISO-8601 string (``Z`` suffix allowed) into an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class Subject:
    id: int
    name: str
    color: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "color": self.color}

    @classmethod
    def from_dict(cls, data: dict) -> "Subject":
        return cls(id=int(data["id"]), name=data["name"], color=data.get("color", "blue"))


@dataclass
class Chapter:
    id: int
    title: str
    subject_id: int
    description: Optional[str] = None
    total_questions: int = 0
    completed_questions: int = 0
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "subjectId": self.subject_id,
            "totalQuestions": self.total_questions,
            "completedQuestions": self.completed_questions,
            "createdAt": _iso(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Chapter":
        return cls(
            id=int(data["id"]),
            title=data["title"],
            subject_id=int(data["subjectId"]),
            description=data.get("description"),
            total_questions=data.get("totalQuestions") or 0,
            completed_questions=data.get("completedQuestions") or 0,
            created_at=parse_timestamp(data.get("createdAt")) or utcnow(),
        )


@dataclass
class Subtopic:
    id: int
    title: str
    chapter_id: int
    description: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "chapterId": self.chapter_id,
            "createdAt": _iso(self.created_at),
        }


@dataclass
class Question:
    id: int
    chapter_id: int
    question: str
    options: list[str]
    correct_answer: int  # index into options
    explanation: Optional[str] = None
    difficulty: Optional[str] = None
    subtopic_id: Optional[int] = None
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "chapterId": self.chapter_id,
            "subtopicId": self.subtopic_id,
            "question": self.question,
            "options": list(self.options),
            "correctAnswer": self.correct_answer,
            "explanation": self.explanation,
            "difficulty": self.difficulty,
            "createdAt": _iso(self.created_at),
        }


@dataclass
class QuestionInput:
    """Create payload: four lettered options and the correct letter."""
    question: str
    option_a: str
    correct_answer: str
    chapter_id: int
    option_b: str = ""
    option_c: str = ""
    option_d: str = ""
    subtopic_id: Optional[int] = None
    explanation: Optional[str] = None
    difficulty: Optional[str] = None

    @property
    def options(self) -> list[str]:
        return [self.option_a, self.option_b or "", self.option_c or "", self.option_d or ""]


@dataclass
class QuizSession:
    id: int
    chapter_id: int
    total_questions: int
    current_question: int = 0
    score: int = 0
    is_completed: bool = False
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "chapterId": self.chapter_id,
            "totalQuestions": self.total_questions,
            "currentQuestion": self.current_question,
            "score": self.score,
            "isCompleted": self.is_completed,
            "createdAt": _iso(self.created_at),
        }


@dataclass
class QuizAnswer:
    id: int
    session_id: int
    question_id: int
    selected_answer: Optional[int]  # None = left unanswered
    is_correct: bool
    time_spent_seconds: int = 0


@dataclass
class StudySession:
    id: int
    chapter_id: int
    duration_minutes: int
    questions_attempted: int = 0
    correct_answers: int = 0
    date: datetime = field(default_factory=utcnow)


@dataclass
class UserStats:
    id: int = 1
    total_questions_solved: int = 0
    total_correct_answers: int = 0
    study_streak: int = 0
    last_study_date: Optional[datetime] = None
    total_study_time_minutes: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "totalQuestionsSolved": self.total_questions_solved,
            "totalCorrectAnswers": self.total_correct_answers,
            "studyStreak": self.study_streak,
            "lastStudyDate": _iso(self.last_study_date),
            "totalStudyTimeMinutes": self.total_study_time_minutes,
        }


@dataclass
class ScheduleEvent:
    id: int
    title: str
    start_time: datetime
    end_time: Optional[datetime] = None
    description: Optional[str] = None
    color: str = "blue"
    chapter_id: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "startTime": _iso(self.start_time),
            "endTime": _iso(self.end_time),
            "color": self.color,
            "chapterId": self.chapter_id,
        }
