"""Default subjects, chapters and stats for a fresh install."""
from neet_tutor.models import Chapter, Subject, UserStats, utcnow

DEFAULT_SUBJECTS = [
    (1, "Physics", "blue"),
    (2, "Chemistry", "green"),
    (3, "Biology", "purple"),
]

# (id, title, description, subject_id)
DEFAULT_CHAPTERS = [
    (1, "Mechanics", "Laws of motion and forces", 1),
    (2, "Thermodynamics", "Heat and energy transfer", 1),
    (3, "Atomic Structure", "Structure of atoms and molecules", 2),
    (4, "Chemical Bonding", "Types of chemical bonds", 2),
    (5, "Cell Biology", "Structure and function of cells", 3),
    (6, "Genetics", "Heredity and genetic variation", 3),
]


def default_subjects() -> list[Subject]:
    return [Subject(id=i, name=name, color=color) for i, name, color in DEFAULT_SUBJECTS]


def default_chapters() -> list[Chapter]:
    """Sample chapters, two per subject, with no questions yet."""
    now = utcnow()
    return [
        Chapter(id=i, title=title, description=desc, subject_id=subject_id,
                total_questions=0, completed_questions=0, created_at=now)
        for i, title, desc, subject_id in DEFAULT_CHAPTERS
    ]


def default_user_stats() -> UserStats:
    """Demo figures shown on the dashboard until real progress replaces them."""
    return UserStats(
        id=1,
        total_questions_solved=1247,
        total_correct_answers=1085,
        study_streak=12,
        last_study_date=utcnow(),
        total_study_time_minutes=1260,
    )
