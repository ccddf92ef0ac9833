from datetime import datetime, timezone

from tippr import db


class Prediction(db.Model):
    __tablename__ = "predictions"

    id = db.Column(db.Integer, primary_key=True)

    # Prediction identification
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    league_id = db.Column(db.Integer, db.ForeignKey("leagues.id"), nullable=False)
    match_id = db.Column(db.Integer, db.ForeignKey("matches.id"), nullable=False)

    # Predicted score
    home_score = db.Column(db.Integer, nullable=False)
    away_score = db.Column(db.Integer, nullable=False)

    # Results (written by the scoring engine only)
    points_earned = db.Column(db.Integer, nullable=False, default=0)
    is_scored = db.Column(db.Boolean, nullable=False, default=False)
    scored_result_version = db.Column(db.Integer)
    scored_at = db.Column(db.DateTime)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    user = db.relationship("User", foreign_keys=[user_id])

    __table_args__ = (
        db.UniqueConstraint(
            "user_id", "match_id", "league_id", name="unique_user_match_league_prediction"
        ),
        db.Index("idx_prediction_match", "match_id"),
        db.Index("idx_prediction_league_user", "league_id", "user_id"),
    )

    def __repr__(self):
        return (
            f"<Prediction user_id={self.user_id} match_id={self.match_id} "
            f"league_id={self.league_id} {self.home_score}-{self.away_score}>"
        )

    def mark_scored(self, points, result_version, scored_at=None):
        """Record the outcome of scoring against ``result_version``"""
        self.points_earned = points
        self.is_scored = True
        self.scored_result_version = result_version
        self.scored_at = scored_at or datetime.now(timezone.utc)

    def reset_score(self):
        """Back to unscored, used when a rebuild finds the match unfinished"""
        self.points_earned = 0
        self.is_scored = False
        self.scored_result_version = None
        self.scored_at = None

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "league_id": self.league_id,
            "match_id": self.match_id,
            "home_score": self.home_score,
            "away_score": self.away_score,
            "points_earned": self.points_earned,
            "is_scored": self.is_scored,
            "scored_result_version": self.scored_result_version,
            "scored_at": self.scored_at.isoformat() if self.scored_at else None,
        }
