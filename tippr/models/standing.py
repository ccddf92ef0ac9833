from datetime import datetime, timezone

from tippr import db


class LeagueStanding(db.Model):
    """One row per (league, member). Derived by the standings engine only."""

    __tablename__ = "league_standings"

    id = db.Column(db.Integer, primary_key=True)
    league_id = db.Column(db.Integer, db.ForeignKey("leagues.id"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    match_points = db.Column(db.Integer, nullable=False, default=0)
    bonus_points = db.Column(db.Integer, nullable=False, default=0)
    total_points = db.Column(db.Integer, nullable=False, default=0)

    # Null until the first rank computation
    rank = db.Column(db.Integer)
    previous_rank = db.Column(db.Integer)

    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    user = db.relationship("User", foreign_keys=[user_id])

    __table_args__ = (
        db.UniqueConstraint("league_id", "user_id", name="unique_league_user_standing"),
        db.Index("idx_standing_league_rank", "league_id", "rank"),
        db.CheckConstraint("rank IS NULL OR rank >= 1", name="rank_positive"),
    )

    def __repr__(self):
        return (
            f"<LeagueStanding league_id={self.league_id} user_id={self.user_id} "
            f"rank={self.rank} total={self.total_points}>"
        )

    @property
    def rank_change(self):
        """Positive when the member climbed since the previous computation"""
        if self.previous_rank is None or self.rank is None:
            return None
        return self.previous_rank - self.rank

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "username": self.user.username if self.user else None,
            "display_name": self.user.full_name if self.user else None,
            "rank": self.rank,
            "previous_rank": self.previous_rank,
            "rank_change": self.rank_change,
            "match_points": self.match_points,
            "bonus_points": self.bonus_points,
            "total_points": self.total_points,
        }
