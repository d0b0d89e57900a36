from __future__ import annotations


class RosterError(ValueError):
    """Base class for rejected roster intents."""


class ValidationError(RosterError):
    """Raised when user input is rejected before any store call."""


class SessionNotFound(RosterError):
    def __init__(self, session_id: int) -> None:
        super().__init__("Session not found. It may have been deleted.")
        self.session_id = session_id


class DuplicateAvailable(RosterError):
    def __init__(self, name: str) -> None:
        super().__init__("You are already signed up as available!")
        self.name = name


class DuplicateUnavailable(RosterError):
    def __init__(self, name: str) -> None:
        super().__init__("You are already marked as unavailable!")
        self.name = name


class SessionFull(RosterError):
    def __init__(self, session_id: int) -> None:
        super().__init__("Session is full!")
        self.session_id = session_id


class StoreUnavailable(RuntimeError):
    """Raised when a fetch or mutation against the data store fails."""
