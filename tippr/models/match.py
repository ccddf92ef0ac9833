import enum
from datetime import datetime, timezone

from tippr import db
from tippr.utils.errors import ValidationError


class MatchStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    LIVE = "live"
    FULL_TIME = "full_time"
    POSTPONED = "postponed"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, value):
        """Accept an enum member, its value ("full_time") or its name ("FULL_TIME")"""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValidationError(
                f"Unknown match status '{value}'", "match.status.invalid"
            ) from None


class Match(db.Model):
    __tablename__ = "matches"

    id = db.Column(db.Integer, primary_key=True)
    tournament_id = db.Column(
        db.Integer, db.ForeignKey("tournaments.id"), nullable=False
    )

    # Teams
    home_team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=False)
    away_team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=False)

    kickoff = db.Column(db.DateTime)

    # Scores (null until played)
    home_score = db.Column(db.Integer)
    away_score = db.Column(db.Integer)

    status = db.Column(
        db.Enum(MatchStatus, native_enum=False, length=20),
        nullable=False,
        default=MatchStatus.SCHEDULED,
    )

    # Bumped every time a finalized score changes; never decreases
    result_version = db.Column(db.Integer, nullable=False, default=0)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    home_team = db.relationship("Team", foreign_keys=[home_team_id])
    away_team = db.relationship("Team", foreign_keys=[away_team_id])
    predictions = db.relationship(
        "Prediction", backref="match", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.Index("idx_match_tournament", "tournament_id"),
        db.Index("idx_match_status", "status"),
        db.CheckConstraint("home_team_id != away_team_id", name="different_teams"),
        db.CheckConstraint("result_version >= 0", name="result_version_non_negative"),
    )

    def __repr__(self):
        return f"<Match {self.id} {self.home_score}-{self.away_score} v{self.result_version}>"

    @property
    def is_finished(self):
        return self.status == MatchStatus.FULL_TIME

    @property
    def has_score(self):
        return self.home_score is not None and self.away_score is not None

    @property
    def is_scorable(self):
        """Finished with a final score on both sides"""
        return self.is_finished and self.has_score

    def apply_result(self, home_score, away_score, status):
        """
        Write a result to the match.

        This is the only place ``result_version`` moves. It is incremented
        once when the match becomes full time, and once more every time a
        full-time score is corrected. Writing the same final score again
        leaves the version alone.

        Returns:
            bool: True when the version was bumped and predictions must be
            re-scored.
        """
        status = MatchStatus.parse(status)
        for label, score in (("home", home_score), ("away", away_score)):
            if score is None:
                continue
            if isinstance(score, bool) or not isinstance(score, int) or score < 0:
                raise ValidationError(
                    f"{label} score must be a non-negative integer",
                    "match.score.invalid",
                )

        if status == MatchStatus.FULL_TIME and (home_score is None or away_score is None):
            raise ValidationError(
                "A full-time result needs both scores", "match.score.missing"
            )

        was_final = self.is_scorable
        previous_score = (self.home_score, self.away_score)

        self.home_score = home_score
        self.away_score = away_score
        self.status = status

        if status != MatchStatus.FULL_TIME:
            return False

        if was_final and previous_score == (home_score, away_score):
            return False

        self.result_version = (self.result_version or 0) + 1
        return True

    def to_dict(self):
        return {
            "id": self.id,
            "tournament_id": self.tournament_id,
            "home_team_id": self.home_team_id,
            "away_team_id": self.away_team_id,
            "kickoff": self.kickoff.isoformat() if self.kickoff else None,
            "home_score": self.home_score,
            "away_score": self.away_score,
            "status": self.status.value if self.status else None,
            "result_version": self.result_version,
        }
