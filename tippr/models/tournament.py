from datetime import datetime, timezone

from tippr import db


class Tournament(db.Model):
    __tablename__ = "tournaments"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)  # e.g., "World Cup 2026"
    is_active = db.Column(db.Boolean, default=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    teams = db.relationship("Team", backref="tournament", lazy="dynamic")
    matches = db.relationship(
        "Match", backref="tournament", lazy="dynamic", cascade="all, delete-orphan"
    )
    leagues = db.relationship("League", backref="tournament", lazy="dynamic")
    bonus_questions = db.relationship(
        "BonusQuestion",
        backref="tournament",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )

    __table_args__ = (db.Index("idx_tournament_active", "is_active"),)

    def __repr__(self):
        return f"<Tournament {self.name}>"

    def get_league_ids(self):
        """IDs of every league playing this tournament, in creation order"""
        from .league import League

        rows = (
            db.session.query(League.id)
            .filter(League.tournament_id == self.id)
            .order_by(League.id)
            .all()
        )
        return [row.id for row in rows]

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "is_active": self.is_active,
        }
