"""Study session tracking, streaks and the study calendar."""
from datetime import date, datetime, timedelta
from typing import Optional

from neet_tutor.models import ScheduleEvent, StudySession, utcnow


def next_streak(current_streak: int, last_study_date: Optional[date], today: date) -> int:
    """Streak after studying on ``today``: kept same day, +1 the next day, else reset."""
    if last_study_date is None:
        return 1
    gap = (today - last_study_date).days
    if gap <= 0:
        return max(current_streak, 1)
    if gap == 1:
        return current_streak + 1
    return 1


def record_study_session(storage, chapter_id: int, duration_minutes: int,
                         questions_attempted: int = 0, correct_answers: int = 0,
                         now: Optional[datetime] = None) -> StudySession:
    """Log a study session and roll it into the user's stats."""
    now = now or utcnow()
    session = storage.create_study_session(
        chapter_id=chapter_id,
        duration_minutes=duration_minutes,
        questions_attempted=questions_attempted,
        correct_answers=correct_answers,
    )
    stats = storage.get_user_stats()
    last = stats.last_study_date.date() if stats.last_study_date else None
    storage.update_user_stats({
        "study_streak": next_streak(stats.study_streak, last, now.date()),
        "last_study_date": now,
        "total_study_time_minutes": stats.total_study_time_minutes + duration_minutes,
    })
    return session


def get_total_study_minutes(storage, chapter_id: int) -> int:
    return sum(s.duration_minutes for s in storage.get_study_sessions_by_chapter(chapter_id))


def get_events_for_day(storage, day: date) -> list[ScheduleEvent]:
    return sorted(storage.get_schedule_events_by_date(day), key=lambda e: e.start_time)


def get_upcoming_events(storage, now: Optional[datetime] = None, days: int = 7,
                        limit: int = 10) -> list[ScheduleEvent]:
    """Events starting between ``now`` and ``days`` days ahead, soonest first."""
    now = now or utcnow()
    horizon = now + timedelta(days=days)
    upcoming = [e for e in storage.get_schedule_events() if now <= e.start_time < horizon]
    return sorted(upcoming, key=lambda e: e.start_time)[:limit]
