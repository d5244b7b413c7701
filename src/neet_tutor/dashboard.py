"""Dashboard and analytics figures."""
from neet_tutor.models import UserStats


def get_readiness_label(score: float) -> str:
    if score >= 80:
        return "READY"
    elif score >= 65:
        return "LIKELY"
    elif score >= 50:
        return "NEEDS WORK"
    return "NOT READY"


def get_readiness_color(score: float) -> str:
    if score >= 80:
        return "green"
    elif score >= 65:
        return "yellow"
    elif score >= 50:
        return "dark_orange"
    return "red"


def get_accuracy(stats: UserStats) -> int:
    """Overall accuracy as a whole percentage."""
    if not stats.total_questions_solved:
        return 0
    return round(stats.total_correct_answers / stats.total_questions_solved * 100)


def get_study_hours(stats: UserStats) -> float:
    return round(stats.total_study_time_minutes / 60, 1)


def get_chapter_progress(storage) -> list[dict]:
    results = []
    for chapter in storage.get_chapters():
        subject = storage.get_subject(chapter.subject_id)
        total = chapter.total_questions or 0
        pct = (chapter.completed_questions / total * 100) if total else 0.0
        results.append({
            "chapter_id": chapter.id,
            "title": chapter.title,
            "subject": subject.name if subject else "Unknown",
            "total_questions": total,
            "completed_questions": chapter.completed_questions,
            "completion": round(pct, 1),
        })
    return results


def get_subject_breakdown(storage) -> list[dict]:
    results = []
    for subject in storage.get_subjects():
        chapters = storage.get_chapters_by_subject(subject.id)
        results.append({
            "subject_id": subject.id,
            "name": subject.name,
            "color": subject.color,
            "chapters": len(chapters),
            "total_questions": sum(c.total_questions or 0 for c in chapters),
        })
    return results


def get_dashboard(storage) -> dict:
    stats = storage.get_user_stats()
    accuracy = get_accuracy(stats)
    return {
        "questions_solved": stats.total_questions_solved,
        "correct_answers": stats.total_correct_answers,
        "accuracy": accuracy,
        "readiness": get_readiness_label(accuracy),
        "study_streak": stats.study_streak,
        "study_hours": get_study_hours(stats),
        "subjects": get_subject_breakdown(storage),
    }
