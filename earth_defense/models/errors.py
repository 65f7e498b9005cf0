# earth_defense/models/errors.py
"""Domain errors and the HTTP status each one maps to."""


class EarthDefenseError(Exception):
    """Base class for errors surfaced to clients as ``{"error": message}``."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class LevelNotFoundError(EarthDefenseError):
    status_code = 404

    def __init__(self, level_id):
        super().__init__(f"Level {level_id} not found")
        self.level_id = level_id


class SessionNotFoundError(EarthDefenseError):
    status_code = 404

    def __init__(self, session_id: str):
        super().__init__("Session not found")
        self.session_id = session_id


class InvalidActionError(EarthDefenseError):
    status_code = 400


class InvalidRequestError(EarthDefenseError):
    status_code = 400


class NeoSourceError(EarthDefenseError):
    status_code = 502
