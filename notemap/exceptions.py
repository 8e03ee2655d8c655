"""Custom exceptions for NoteMap."""


class NoteMapError(Exception):
    """Base class for errors surfaced to NoteMap callers."""

    pass


class AudioLoadError(NoteMapError):
    """Raised when an audio file cannot be loaded or decoded to PCM."""

    pass


class AudioTooShortError(NoteMapError):
    """Raised when decoded audio is empty or too short to yield a spectral frame."""

    pass
