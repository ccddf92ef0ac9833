import os

from tippr import create_app, db
from tippr.models import (
    BonusPrediction,
    BonusQuestion,
    League,
    LeagueStanding,
    Match,
    Prediction,
    Tournament,
    User,
)
from tippr.services.standings_service import standings_service

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "User": User,
        "Tournament": Tournament,
        "Match": Match,
        "League": League,
        "LeagueStanding": LeagueStanding,
        "Prediction": Prediction,
        "BonusQuestion": BonusQuestion,
        "BonusPrediction": BonusPrediction,
        "standings_service": standings_service,
    }


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)), debug=app.config.get("DEBUG", False))
