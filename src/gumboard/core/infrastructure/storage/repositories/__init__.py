from gumboard.core.infrastructure.storage.repositories.notes import NotesRepository

__all__ = ["NotesRepository"]
