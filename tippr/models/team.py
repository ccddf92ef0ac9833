from tippr import db


class Team(db.Model):
    __tablename__ = "teams"

    id = db.Column(db.Integer, primary_key=True)
    tournament_id = db.Column(
        db.Integer, db.ForeignKey("tournaments.id"), nullable=False
    )
    name = db.Column(db.String(100), nullable=False)
    code = db.Column(db.String(3))  # FIFA code, e.g. "SWE"

    __table_args__ = (db.Index("idx_team_tournament", "tournament_id"),)

    def __repr__(self):
        return f"<Team {self.code or self.name}>"

    def to_dict(self):
        return {"id": self.id, "name": self.name, "code": self.code}
