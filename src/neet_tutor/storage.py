"""Storage facade: the one place the application reads and writes data.

Every entity kind lives in an in-memory map owned by ``Storage``. What else
happens on a write is decided by ``PERSISTENCE_POLICY``:

- LOCAL_FILE kinds (subjects, chapters) rewrite the JSON snapshots.
- REMOTE kinds (questions) are inserted into Supabase first.
- NONE kinds live only as long as the process.

Messages, files and folders are not cached at all; their calls go straight
to Supabase.

Build instances with ``create_storage`` so callers only ever see a facade
whose ``initialize`` step has finished.
"""
import dataclasses
import logging
from collections import Counter
from datetime import date, datetime
from enum import Enum
from typing import Callable, Optional

from neet_tutor import db
from neet_tutor.config import Settings
from neet_tutor.convert import input_to_row, parse_answer_letter, question_from_input, question_from_row
from neet_tutor.errors import ChapterNotFoundError, InvalidAnswerError, RemoteWriteError
from neet_tutor.models import (
    Chapter, Question, QuestionInput, QuizAnswer, QuizSession, ScheduleEvent,
    StudySession, Subject, Subtopic, UserStats, parse_timestamp, utcnow,
)
from neet_tutor.seed import default_chapters, default_subjects, default_user_stats
from neet_tutor.snapshots import SnapshotStore

logger = logging.getLogger(__name__)


class EntityKind(str, Enum):
    SUBJECT = "subjects"
    CHAPTER = "chapters"
    SUBTOPIC = "subtopics"
    QUESTION = "questions"
    QUIZ_SESSION = "quiz_sessions"
    QUIZ_ANSWER = "quiz_answers"
    STUDY_SESSION = "study_sessions"
    SCHEDULE_EVENT = "schedule_events"


class Persistence(Enum):
    NONE = "none"
    LOCAL_FILE = "local_file"
    REMOTE = "remote"


PERSISTENCE_POLICY = {
    EntityKind.SUBJECT: Persistence.LOCAL_FILE,
    EntityKind.CHAPTER: Persistence.LOCAL_FILE,
    EntityKind.SUBTOPIC: Persistence.NONE,
    EntityKind.QUESTION: Persistence.REMOTE,
    EntityKind.QUIZ_SESSION: Persistence.NONE,
    EntityKind.QUIZ_ANSWER: Persistence.NONE,
    EntityKind.STUDY_SESSION: Persistence.NONE,
    EntityKind.SCHEDULE_EVENT: Persistence.NONE,
}

SNAPSHOT_KINDS = [kind for kind, policy in PERSISTENCE_POLICY.items() if policy is Persistence.LOCAL_FILE]

_FROM_SNAPSHOT = {
    EntityKind.SUBJECT: Subject.from_dict,
    EntityKind.CHAPTER: Chapter.from_dict,
}


class InsertOutcome(Enum):
    SAVED = "saved"
    FAILED = "failed"
    EMPTY = "empty"  # no error reported, but no rows came back


class Storage:
    def __init__(self, snapshots: SnapshotStore, client=None):
        self.snapshots = snapshots
        self.client = client
        self._cache: dict[EntityKind, dict[int, object]] = {kind: {} for kind in EntityKind}
        self._counters: dict[EntityKind, int] = {kind: 1 for kind in EntityKind}
        self._user_stats = default_user_stats()
        # question ids handed out by the local fallback, not known to Supabase
        self._local_only_ids: set[int] = set()
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    # ── Initialization ──────────────────────────────────────────────

    def initialize(self) -> None:
        """Load snapshots, seed defaults, then pull questions from Supabase."""
        self._load_snapshots()
        self._seed_defaults()
        if self._load_remote_questions():
            self.reconcile_question_counts()
        self._initialized = True

    def _load_snapshots(self) -> None:
        for kind in SNAPSHOT_KINDS:
            try:
                records = self.snapshots.read_snapshot(kind.value)
                if records is None:
                    continue
                items = [_FROM_SNAPSHOT[kind](record) for record in records]
            except (OSError, KeyError, TypeError, ValueError) as e:
                logger.warning("Could not load %s snapshot, using defaults: %s", kind.value, e)
                continue
            for item in items:
                self._put(kind, item)
            logger.info("Loaded %d %s from %s", len(items), kind.value, self.snapshots.path_for(kind.value))

    def _seed_defaults(self) -> None:
        if not self._cache[EntityKind.SUBJECT]:
            for subject in default_subjects():
                self._put(EntityKind.SUBJECT, subject)
        if not self._cache[EntityKind.CHAPTER]:
            for chapter in default_chapters():
                self._put(EntityKind.CHAPTER, chapter)

    def _load_remote_questions(self) -> bool:
        """Cache every remote question. Returns False if the fetch failed."""
        if self.client is None:
            logger.info("No remote store configured; question cache starts empty")
            return False
        try:
            rows = db.fetch_rows(self.client, db.QUESTIONS_TABLE)
        except Exception as e:
            logger.error("Error loading questions from Supabase: %s", e)
            return False
        loaded = 0
        for row in rows:
            try:
                question = question_from_row(row)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping question row %s: %s", row.get("id"), e)
                continue
            self._put(EntityKind.QUESTION, question)
            loaded += 1
        logger.info("Loaded %d questions from Supabase", loaded)
        return True

    # ── Cache plumbing ──────────────────────────────────────────────

    def _next_id(self, kind: EntityKind) -> int:
        new_id = self._counters[kind]
        self._counters[kind] = new_id + 1
        return new_id

    def _put(self, kind: EntityKind, item) -> None:
        """Cache an item that already has an id, keeping the counter ahead of it."""
        self._cache[kind][item.id] = item
        if item.id >= self._counters[kind]:
            self._counters[kind] = item.id + 1

    def _put_remote_question(self, question: Question) -> None:
        """Cache a question Supabase stored, moving any local-only question off its id."""
        local = self._cache[EntityKind.QUESTION].get(question.id)
        self._put(EntityKind.QUESTION, question)
        if local is None or question.id not in self._local_only_ids:
            return
        self._local_only_ids.discard(question.id)
        moved = dataclasses.replace(local, id=self._next_id(EntityKind.QUESTION))
        self._cache[EntityKind.QUESTION][moved.id] = moved
        self._local_only_ids.add(moved.id)
        logger.warning("Local question %d renumbered to %d; Supabase assigned its id to a new row",
                       question.id, moved.id)

    def _all(self, kind: EntityKind) -> list:
        return list(self._cache[kind].values())

    def _where(self, kind: EntityKind, attr: str, value) -> list:
        return [item for item in self._cache[kind].values() if getattr(item, attr) == value]

    def _create(self, kind: EntityKind, build: Callable[[int], object]):
        item = build(self._next_id(kind))
        self._cache[kind][item.id] = item
        self._after_write(kind)
        return item

    def _update(self, kind: EntityKind, item_id: int, changes: dict):
        existing = self._cache[kind].get(item_id)
        if existing is None:
            return None
        fields = {k: v for k, v in changes.items() if k != "id"}
        updated = dataclasses.replace(existing, **fields)
        self._cache[kind][item_id] = updated
        self._after_write(kind)
        return updated

    def _delete(self, kind: EntityKind, item_id: int) -> bool:
        if self._cache[kind].pop(item_id, None) is None:
            return False
        self._after_write(kind)
        return True

    def _after_write(self, kind: EntityKind) -> None:
        if PERSISTENCE_POLICY[kind] is Persistence.LOCAL_FILE:
            self.persist_snapshots()

    def persist_snapshots(self) -> None:
        """Write subjects and chapters to disk. Failures are logged, never raised."""
        for kind in SNAPSHOT_KINDS:
            records = [item.to_dict() for item in self._cache[kind].values()]
            try:
                self.snapshots.write_snapshot(kind.value, records)
            except (OSError, TypeError, ValueError) as e:
                logger.error("Error persisting %s snapshot: %s", kind.value, e)

    # ── Remote plumbing ─────────────────────────────────────────────

    def _fetch_remote(self, table: str, filters: Optional[dict] = None) -> list[dict]:
        try:
            return db.fetch_rows(self.client, table, filters)
        except Exception as e:
            logger.error("Error reading %s from Supabase: %s", table, e)
            return []

    def _insert_remote(self, table: str, rows) -> tuple[InsertOutcome, list[dict]]:
        try:
            stored = db.insert_rows(self.client, table, rows)
        except Exception as e:
            logger.warning("Supabase insert into %s failed: %s", table, e)
            return InsertOutcome.FAILED, []
        if not stored:
            logger.warning("Supabase insert into %s reported success but returned no rows", table)
            return InsertOutcome.EMPTY, []
        return InsertOutcome.SAVED, stored

    def _create_remote(self, table: str, row: dict) -> dict:
        row = {**row, "created_at": utcnow().isoformat()}
        outcome, stored = self._insert_remote(table, row)
        if outcome is not InsertOutcome.SAVED:
            raise RemoteWriteError(f"Could not save row to {table} ({outcome.value})")
        return stored[0]

    def _delete_remote(self, table: str, row_id: int) -> bool:
        try:
            db.delete_rows(self.client, table, {"id": row_id})
        except Exception as e:
            logger.error("Error deleting %s %s: %s", table, row_id, e)
            return False
        return True

    # ── Subjects ────────────────────────────────────────────────────

    def get_subjects(self) -> list[Subject]:
        return self._all(EntityKind.SUBJECT)

    def get_subject(self, subject_id: int) -> Optional[Subject]:
        return self._cache[EntityKind.SUBJECT].get(subject_id)

    def create_subject(self, name: str, color: str) -> Subject:
        return self._create(EntityKind.SUBJECT, lambda new_id: Subject(id=new_id, name=name, color=color))

    # ── Chapters ────────────────────────────────────────────────────

    def get_chapters(self) -> list[Chapter]:
        return self._all(EntityKind.CHAPTER)

    def get_chapters_by_subject(self, subject_id: int) -> list[Chapter]:
        return self._where(EntityKind.CHAPTER, "subject_id", subject_id)

    def get_chapter(self, chapter_id: int) -> Optional[Chapter]:
        return self._cache[EntityKind.CHAPTER].get(chapter_id)

    def create_chapter(self, title: str, subject_id: int, description: Optional[str] = None) -> Chapter:
        return self._create(EntityKind.CHAPTER, lambda new_id: Chapter(
            id=new_id, title=title, subject_id=subject_id, description=description or None,
        ))

    def update_chapter(self, chapter_id: int, changes: dict) -> Optional[Chapter]:
        return self._update(EntityKind.CHAPTER, chapter_id, changes)

    def delete_chapter(self, chapter_id: int) -> bool:
        return self._delete(EntityKind.CHAPTER, chapter_id)

    def reconcile_question_counts(self) -> dict[int, int]:
        """Set each chapter's total_questions to the number of cached questions.

        Returns {chapter_id: new_total} for the chapters that changed.
        """
        counts = Counter(q.chapter_id for q in self._cache[EntityKind.QUESTION].values())
        changed = {}
        for chapter in self._cache[EntityKind.CHAPTER].values():
            actual = counts.get(chapter.id, 0)
            if chapter.total_questions != actual:
                chapter.total_questions = actual
                changed[chapter.id] = actual
        if changed:
            logger.info("Reconciled question counts for chapters %s", sorted(changed))
            self._after_write(EntityKind.CHAPTER)
        return changed

    # ── Questions ───────────────────────────────────────────────────

    def get_questions(self) -> list[Question]:
        return self._all(EntityKind.QUESTION)

    def get_questions_by_chapter(self, chapter_id: int) -> list[Question]:
        return self._where(EntityKind.QUESTION, "chapter_id", chapter_id)

    def get_question(self, question_id: int) -> Optional[Question]:
        return self._cache[EntityKind.QUESTION].get(question_id)

    def get_questions_by_subtopic(self, subtopic_id: int) -> list[Question]:
        """Read straight from Supabase; subtopic queries bypass the cache."""
        questions = []
        for row in self._fetch_remote(db.QUESTIONS_TABLE, {"subtopic_id": subtopic_id}):
            try:
                questions.append(question_from_row(row))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping question row %s: %s", row.get("id"), e)
        return questions

    def create_question(self, payload: QuestionInput) -> Question:
        """Insert one question into Supabase, then cache it under the remote id.

        Raises InvalidAnswerError before any remote call, and RemoteWriteError
        when Supabase does not store the row. There is no local fallback.
        """
        row = input_to_row(payload)
        outcome, stored = self._insert_remote(db.QUESTIONS_TABLE, row)
        if outcome is not InsertOutcome.SAVED:
            raise RemoteWriteError(f"Could not save question to Supabase ({outcome.value})")
        saved = stored[0]
        question = question_from_input(payload, int(saved["id"]), parse_timestamp(saved.get("created_at")))
        self._put_remote_question(question)
        self._count_new_questions([question])
        return question

    def create_bulk_questions(self, payloads: list[QuestionInput]) -> list[Question]:
        """Create many questions; saved remotely when possible, locally otherwise.

        The whole batch is rejected up front if any chapter is unknown or any
        answer letter is invalid.
        """
        if not payloads:
            return []
        self._validate_batch(payloads)

        rows = [input_to_row(p) for p in payloads]
        outcome, stored = self._insert_remote(db.QUESTIONS_TABLE, rows)
        if outcome is InsertOutcome.SAVED:
            created = [question_from_row(row) for row in stored]
            for question in created:
                self._put_remote_question(question)
        else:
            logger.warning("Saving %d questions locally only (remote insert %s)", len(payloads), outcome.value)
            now = utcnow()
            created = []
            for payload in payloads:
                question = question_from_input(payload, self._next_id(EntityKind.QUESTION), now)
                self._cache[EntityKind.QUESTION][question.id] = question
                self._local_only_ids.add(question.id)
                created.append(question)

        self._count_new_questions(created)
        return created

    def _validate_batch(self, payloads: list[QuestionInput]) -> None:
        chapters = self._cache[EntityKind.CHAPTER]
        missing = list(dict.fromkeys(p.chapter_id for p in payloads if p.chapter_id not in chapters))
        if missing:
            raise ChapterNotFoundError(missing)
        bad_rows = [pos for pos, p in enumerate(payloads, 1) if not parse_answer_letter(p.correct_answer).ok]
        if bad_rows:
            rows = ", ".join(str(pos) for pos in bad_rows)
            raise InvalidAnswerError(f"Invalid correct answer in row(s) {rows}; expected A, B, C or D")

    def _count_new_questions(self, questions: list[Question]) -> None:
        chapters = self._cache[EntityKind.CHAPTER]
        for question in questions:
            chapter = chapters.get(question.chapter_id)
            if chapter is not None:
                chapter.total_questions = (chapter.total_questions or 0) + 1
        self._after_write(EntityKind.CHAPTER)

    # ── Subtopics ───────────────────────────────────────────────────

    def get_subtopics_by_chapter(self, chapter_id: int) -> list[Subtopic]:
        return self._where(EntityKind.SUBTOPIC, "chapter_id", chapter_id)

    def create_subtopic(self, title: str, chapter_id: int, description: Optional[str] = None) -> Subtopic:
        return self._create(EntityKind.SUBTOPIC, lambda new_id: Subtopic(
            id=new_id, title=title, chapter_id=chapter_id, description=description or None,
        ))

    def delete_subtopic(self, subtopic_id: int) -> bool:
        return self._delete(EntityKind.SUBTOPIC, subtopic_id)

    # ── Messages, files, folders (Supabase only) ────────────────────

    def get_messages(self) -> list[dict]:
        return self._fetch_remote(db.MESSAGES_TABLE)

    def create_message(self, text: str, sender: str) -> dict:
        return self._create_remote(db.MESSAGES_TABLE, {"text": text, "sender": sender})

    def get_files(self) -> list[dict]:
        return self._fetch_remote(db.FILES_TABLE)

    def get_folders(self) -> list[dict]:
        return self._fetch_remote(db.FOLDERS_TABLE)

    def create_file(self, name: str, file_type: str, size: int, path: str) -> dict:
        return self._create_remote(db.FILES_TABLE, {"name": name, "type": file_type, "size": size, "path": path})

    def create_folder(self, name: str, path: str) -> dict:
        return self._create_remote(db.FOLDERS_TABLE, {"name": name, "path": path})

    def delete_file(self, file_id: int) -> bool:
        return self._delete_remote(db.FILES_TABLE, file_id)

    def delete_folder(self, folder_id: int) -> bool:
        return self._delete_remote(db.FOLDERS_TABLE, folder_id)

    # ── Quiz sessions and answers ───────────────────────────────────

    def create_quiz_session(self, chapter_id: int, total_questions: int, current_question: int = 0,
                            score: int = 0, is_completed: bool = False) -> QuizSession:
        return self._create(EntityKind.QUIZ_SESSION, lambda new_id: QuizSession(
            id=new_id, chapter_id=chapter_id, total_questions=total_questions,
            current_question=current_question, score=score, is_completed=is_completed,
        ))

    def get_quiz_session(self, session_id: int) -> Optional[QuizSession]:
        return self._cache[EntityKind.QUIZ_SESSION].get(session_id)

    def get_quiz_sessions_by_chapter(self, chapter_id: int) -> list[QuizSession]:
        return self._where(EntityKind.QUIZ_SESSION, "chapter_id", chapter_id)

    def update_quiz_session(self, session_id: int, changes: dict) -> Optional[QuizSession]:
        return self._update(EntityKind.QUIZ_SESSION, session_id, changes)

    def create_quiz_answer(self, session_id: int, question_id: int, selected_answer: Optional[int],
                           is_correct: bool, time_spent_seconds: int = 0) -> QuizAnswer:
        return self._create(EntityKind.QUIZ_ANSWER, lambda new_id: QuizAnswer(
            id=new_id, session_id=session_id, question_id=question_id,
            selected_answer=selected_answer, is_correct=is_correct,
            time_spent_seconds=time_spent_seconds,
        ))

    def get_quiz_answers_by_session(self, session_id: int) -> list[QuizAnswer]:
        return self._where(EntityKind.QUIZ_ANSWER, "session_id", session_id)

    # ── Study sessions ──────────────────────────────────────────────

    def create_study_session(self, chapter_id: int, duration_minutes: int,
                             questions_attempted: int = 0, correct_answers: int = 0) -> StudySession:
        return self._create(EntityKind.STUDY_SESSION, lambda new_id: StudySession(
            id=new_id, chapter_id=chapter_id, duration_minutes=duration_minutes,
            questions_attempted=questions_attempted, correct_answers=correct_answers,
        ))

    def get_study_sessions(self) -> list[StudySession]:
        return self._all(EntityKind.STUDY_SESSION)

    def get_study_sessions_by_chapter(self, chapter_id: int) -> list[StudySession]:
        return self._where(EntityKind.STUDY_SESSION, "chapter_id", chapter_id)

    # ── User stats ──────────────────────────────────────────────────

    def get_user_stats(self) -> UserStats:
        return self._user_stats

    def update_user_stats(self, changes: dict) -> UserStats:
        fields = {k: v for k, v in changes.items() if k != "id"}
        self._user_stats = dataclasses.replace(self._user_stats, **fields)
        return self._user_stats

    # ── Schedule events ─────────────────────────────────────────────

    def get_schedule_events(self) -> list[ScheduleEvent]:
        return self._all(EntityKind.SCHEDULE_EVENT)

    def get_schedule_events_by_date(self, day: date) -> list[ScheduleEvent]:
        return [e for e in self._cache[EntityKind.SCHEDULE_EVENT].values() if e.start_time.date() == day]

    def create_schedule_event(self, title: str, start_time: datetime, end_time: Optional[datetime] = None,
                              description: Optional[str] = None, color: str = "blue",
                              chapter_id: Optional[int] = None) -> ScheduleEvent:
        return self._create(EntityKind.SCHEDULE_EVENT, lambda new_id: ScheduleEvent(
            id=new_id, title=title, start_time=start_time, end_time=end_time,
            description=description, color=color, chapter_id=chapter_id,
        ))

    def update_schedule_event(self, event_id: int, changes: dict) -> Optional[ScheduleEvent]:
        return self._update(EntityKind.SCHEDULE_EVENT, event_id, changes)

    def delete_schedule_event(self, event_id: int) -> bool:
        return self._delete(EntityKind.SCHEDULE_EVENT, event_id)


def create_storage(settings: Settings) -> Storage:
    """Build the facade from settings and run its initialization to completion."""
    try:
        client = db.get_client(settings.supabase_url, settings.supabase_key)
    except Exception as e:
        logger.error("Could not create Supabase client, continuing without remote store: %s", e)
        client = None
    storage = Storage(SnapshotStore(settings.data_dir), client)
    storage.initialize()
    return storage
