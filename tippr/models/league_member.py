from datetime import datetime, timezone

from tippr import db


class LeagueMember(db.Model):
    __tablename__ = "league_members"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    league_id = db.Column(db.Integer, db.ForeignKey("leagues.id"), nullable=False)

    is_admin = db.Column(db.Boolean, default=False)

    # Earlier joiners rank first among members on equal points
    joined_at = db.Column(
        db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        db.UniqueConstraint("user_id", "league_id", name="unique_user_league"),
        db.Index("idx_league_members_league", "league_id", "joined_at"),
    )

    def __repr__(self):
        return f"<LeagueMember user_id={self.user_id} league_id={self.league_id}>"

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "league_id": self.league_id,
            "username": self.user.username if self.user else None,
            "is_admin": self.is_admin,
            "joined_at": self.joined_at.isoformat() if self.joined_at else None,
        }
