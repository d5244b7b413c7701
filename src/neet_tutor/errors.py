"""Exceptions raised to callers of the storage layer."""


class StorageError(Exception):
    """Base class for failures the storage facade surfaces to its caller."""


class ChapterNotFoundError(StorageError):
    def __init__(self, chapter_ids: list[int]):
        self.chapter_ids = chapter_ids
        ids = ", ".join(str(i) for i in chapter_ids)
        super().__init__(f"Chapter(s) with ID(s) {ids} not found. Please create the chapter first.")


class InvalidAnswerError(StorageError, ValueError):
    """Correct answer letter outside A-D."""


class RemoteWriteError(StorageError):
    """A write that must reach the remote store did not."""


class SupabaseNotConfiguredError(RuntimeError):
    """Raised when a remote call is attempted without Supabase credentials."""
