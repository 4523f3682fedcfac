import os
from flask import Flask

from .progress import DEFAULT_GOAL_KM


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, str(default)))
    except ValueError:
        return default


def _env_goal() -> float:
    try:
        goal = float(os.environ.get("GOAL_KM", DEFAULT_GOAL_KM))
    except ValueError:
        return DEFAULT_GOAL_KM
    return goal if goal > 0 else DEFAULT_GOAL_KM


def create_app():
    app = Flask(__name__)

    db_url = os.environ.get("DATABASE_URL")
    if not db_url:
        raise RuntimeError("DATABASE_URL is required to reach the scores table.")

    app.config.update(
        GOAL_KM=_env_goal(),
        TRACKER_TITLE=os.environ.get("TRACKER_TITLE", "Road to Italy"),
    )

    # Initialize connection pool early (optional; direct connect works if pool init fails)
    try:
        from . import datastore_pg as _pg
        _pg.init_pool(minconn=_env_int("DB_POOL_MIN", 1), maxconn=_env_int("DB_POOL_MAX", 10))
    except Exception:  # pragma: no cover
        app.logger.exception("PostgreSQL pool initialization failed; continuing without pool")

    from . import datastore
    from .tracker import UpdateController
    controller = UpdateController(datastore)
    app.extensions["tracker"] = controller

    from . import routes
    app.register_blueprint(routes.bp)

    app.logger.info("Loading participants")
    people = controller.load()
    if not people:
        app.logger.warning("No participants loaded; the board will be empty")

    return app

