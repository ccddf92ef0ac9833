import secrets
from datetime import datetime, timezone

from tippr import db


class League(db.Model):
    __tablename__ = "leagues"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)

    tournament_id = db.Column(
        db.Integer, db.ForeignKey("tournaments.id"), nullable=False
    )
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"))

    # League settings
    is_public = db.Column(db.Boolean, default=False)
    is_global = db.Column(db.Boolean, default=False)
    max_members = db.Column(db.Integer)

    # Code for easy joining
    invite_code = db.Column(db.String(8), unique=True, nullable=False, index=True)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    settings = db.relationship(
        "LeagueSettings",
        backref="league",
        uselist=False,
        cascade="all, delete-orphan",
    )
    members = db.relationship(
        "LeagueMember", backref="league", lazy="dynamic", cascade="all, delete-orphan"
    )
    standings = db.relationship(
        "LeagueStanding", backref="league", lazy="dynamic", cascade="all, delete-orphan"
    )
    predictions = db.relationship("Prediction", backref="league", lazy="dynamic")
    bonus_predictions = db.relationship(
        "BonusPrediction", backref="league", lazy="dynamic"
    )
    owner = db.relationship("User", foreign_keys=[owner_id])

    __table_args__ = (db.Index("idx_league_tournament", "tournament_id"),)

    def __repr__(self):
        return f"<League {self.name}>"

    def __init__(self, **kwargs):
        super(League, self).__init__(**kwargs)
        if not self.invite_code:
            self.invite_code = self.generate_invite_code()

    @staticmethod
    def generate_invite_code():
        """Generate a unique 8-character invite code"""
        while True:
            code = secrets.token_urlsafe(6)[:8].upper()
            if not League.query.filter_by(invite_code=code).first():
                return code

    def get_member_count(self):
        return self.members.count()

    def is_full(self):
        return self.max_members is not None and self.get_member_count() >= self.max_members

    def is_user_member(self, user_id):
        return self.members.filter_by(user_id=user_id).first() is not None

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "tournament_id": self.tournament_id,
            "is_public": self.is_public,
            "is_global": self.is_global,
            "max_members": self.max_members,
            "member_count": self.get_member_count(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class LeagueSettings(db.Model):
    __tablename__ = "league_settings"

    id = db.Column(db.Integer, primary_key=True)
    league_id = db.Column(
        db.Integer, db.ForeignKey("leagues.id"), nullable=False, unique=True
    )

    deadline_minutes = db.Column(db.Integer, nullable=False, default=60)
    allow_late_edits = db.Column(db.Boolean, nullable=False, default=False)

    # Match prediction points
    points_correct_score = db.Column(db.Integer, nullable=False, default=7)
    points_correct_outcome = db.Column(db.Integer, nullable=False, default=3)
    points_correct_goals = db.Column(db.Integer, nullable=False, default=2)

    # Bonus category points
    points_round_of_16_team = db.Column(db.Integer, nullable=False, default=2)
    points_quarter_final_team = db.Column(db.Integer, nullable=False, default=4)
    points_semi_final_team = db.Column(db.Integer, nullable=False, default=6)
    points_final_team = db.Column(db.Integer, nullable=False, default=8)
    points_top_scorer = db.Column(db.Integer, nullable=False, default=20)
    points_winner = db.Column(db.Integer, nullable=False, default=20)
    points_most_goals_group = db.Column(db.Integer, nullable=False, default=10)
    points_most_conceded_group = db.Column(db.Integer, nullable=False, default=10)

    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.CheckConstraint(
            "points_correct_score >= 0 AND points_correct_outcome >= 0 "
            "AND points_correct_goals >= 0",
            name="match_points_non_negative",
        ),
    )

    def __repr__(self):
        return (
            f"<LeagueSettings league_id={self.league_id} "
            f"{self.points_correct_score}/{self.points_correct_outcome}/{self.points_correct_goals}>"
        )

    def to_dict(self):
        return {
            "league_id": self.league_id,
            "deadline_minutes": self.deadline_minutes,
            "allow_late_edits": self.allow_late_edits,
            "points_correct_score": self.points_correct_score,
            "points_correct_outcome": self.points_correct_outcome,
            "points_correct_goals": self.points_correct_goals,
            "points_round_of_16_team": self.points_round_of_16_team,
            "points_quarter_final_team": self.points_quarter_final_team,
            "points_semi_final_team": self.points_semi_final_team,
            "points_final_team": self.points_final_team,
            "points_top_scorer": self.points_top_scorer,
            "points_winner": self.points_winner,
            "points_most_goals_group": self.points_most_goals_group,
            "points_most_conceded_group": self.points_most_conceded_group,
        }
