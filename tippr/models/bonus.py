import enum
from datetime import datetime, timezone

from tippr import db


class BonusQuestionType(str, enum.Enum):
    WINNER = "winner"
    TOP_SCORER = "top_scorer"
    MOST_GOALS_GROUP = "most_goals_group"
    MOST_CONCEDED_GROUP = "most_conceded_group"
    ROUND_OF_16_TEAMS = "round_of_16_teams"
    QUARTER_FINAL_TEAMS = "quarter_final_teams"
    SEMI_FINAL_TEAMS = "semi_final_teams"
    FINAL_TEAMS = "final_teams"


class BonusQuestion(db.Model):
    __tablename__ = "bonus_questions"

    id = db.Column(db.Integer, primary_key=True)
    tournament_id = db.Column(
        db.Integer, db.ForeignKey("tournaments.id"), nullable=False
    )

    question_type = db.Column(
        db.Enum(BonusQuestionType, native_enum=False, length=30), nullable=False
    )
    question = db.Column(db.String(255), nullable=False, default="")
    points = db.Column(db.Integer, nullable=False, default=0)

    # Canonical answer, set exactly once on resolution
    is_resolved = db.Column(db.Boolean, nullable=False, default=False)
    answer_team_id = db.Column(db.Integer, db.ForeignKey("teams.id"))
    answer_text = db.Column(db.String(255))
    resolved_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    answer_team = db.relationship("Team", foreign_keys=[answer_team_id])
    predictions = db.relationship(
        "BonusPrediction",
        backref="bonus_question",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        db.Index("idx_bonus_question_tournament", "tournament_id"),
        db.CheckConstraint("points >= 0", name="bonus_points_non_negative"),
    )

    def __repr__(self):
        state = "resolved" if self.is_resolved else "open"
        return f"<BonusQuestion {self.id} {self.question_type} {state}>"

    def resolve(self, answer_team_id=None, answer_text=None):
        """Set the canonical answer. Resolution is terminal."""
        self.answer_team_id = answer_team_id
        self.answer_text = answer_text.strip() if answer_text else None
        self.is_resolved = True
        self.resolved_at = datetime.now(timezone.utc)

    def to_dict(self):
        return {
            "id": self.id,
            "tournament_id": self.tournament_id,
            "question_type": self.question_type.value if self.question_type else None,
            "question": self.question,
            "points": self.points,
            "is_resolved": self.is_resolved,
            "answer_team_id": self.answer_team_id,
            "answer_text": self.answer_text,
        }


class BonusPrediction(db.Model):
    __tablename__ = "bonus_predictions"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    league_id = db.Column(db.Integer, db.ForeignKey("leagues.id"), nullable=False)
    bonus_question_id = db.Column(
        db.Integer, db.ForeignKey("bonus_questions.id"), nullable=False
    )

    answer_team_id = db.Column(db.Integer, db.ForeignKey("teams.id"))
    answer_text = db.Column(db.String(255))

    # Null until the question is resolved
    points_earned = db.Column(db.Integer)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint(
            "user_id",
            "bonus_question_id",
            "league_id",
            name="unique_user_question_league_bonus_prediction",
        ),
        db.Index("idx_bonus_prediction_question", "bonus_question_id"),
        db.Index("idx_bonus_prediction_league_user", "league_id", "user_id"),
    )

    def __repr__(self):
        return (
            f"<BonusPrediction user_id={self.user_id} "
            f"question_id={self.bonus_question_id} league_id={self.league_id}>"
        )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "league_id": self.league_id,
            "bonus_question_id": self.bonus_question_id,
            "answer_team_id": self.answer_team_id,
            "answer_text": self.answer_text,
            "points_earned": self.points_earned,
        }
