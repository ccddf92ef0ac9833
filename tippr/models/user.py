from datetime import datetime, timezone

from flask_login import UserMixin

from tippr import db


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    display_name = db.Column(db.String(100))

    # Account status
    is_active = db.Column(db.Boolean, default=True)
    is_admin = db.Column(db.Boolean, default=False)  # Site-wide admin privileges

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    league_memberships = db.relationship(
        "LeagueMember", backref="user", lazy="dynamic", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<User {self.username}>"

    @property
    def full_name(self):
        return self.display_name or self.username

    def get_league_ids(self):
        """IDs of every league this user is a member of"""
        return [membership.league_id for membership in self.league_memberships]

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "display_name": self.full_name,
            "is_admin": self.is_admin,
        }
