from tippr import db  # noqa: F401 - imported for model imports

from .bonus import BonusPrediction, BonusQuestion, BonusQuestionType
from .league import League, LeagueSettings
from .league_member import LeagueMember
from .match import Match, MatchStatus
from .prediction import Prediction
from .standing import LeagueStanding
from .team import Team
from .tournament import Tournament
from .user import User

__all__ = [
    "User",
    "Tournament",
    "Team",
    "Match",
    "MatchStatus",
    "League",
    "LeagueSettings",
    "LeagueMember",
    "LeagueStanding",
    "Prediction",
    "BonusQuestion",
    "BonusQuestionType",
    "BonusPrediction",
]
