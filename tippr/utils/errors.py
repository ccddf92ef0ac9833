"""
Error taxonomy for the standings engine.

Every error carries a dotted ``code`` (e.g. ``match.not_found``) that API
clients can switch on, and the HTTP status the admin blueprint answers with.
"""


class ScoringError(Exception):
    """Base class for errors raised by the scoring and standings engine"""

    status = 500
    default_code = "scoring.failed"

    def __init__(self, message, code=None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def to_dict(self):
        return {"error": self.message, "code": self.code}


class NotFoundError(ScoringError):
    """A match, question, league, tournament or team does not exist"""

    status = 404
    default_code = "not_found"


class InvalidStateError(ScoringError):
    """The request is well-formed but the data is not in a scorable state"""

    status = 409
    default_code = "invalid_state"


class ConfigurationError(ScoringError):
    """A league has no scoring settings"""

    status = 422
    default_code = "league.settings_missing"

    def __init__(self, message, code=None, league_id=None):
        super().__init__(message, code)
        self.league_id = league_id


class ValidationError(ScoringError):
    """Request payload is malformed (negative score, unknown status, ...)"""

    status = 400
    default_code = "validation.failed"
