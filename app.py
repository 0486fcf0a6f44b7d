from __future__ import annotations
import os
from importlib import import_module
from flask import Flask
from config import config_map
from extensions import db, migrate
from sqlalchemy import inspect

def _seed_from_config(app):
    if not app.config.get("SEED_TEST_DATA"):
        return
    with app.app_context():
        # таблицы может ещё не быть (alembic upgrade и т.п.)
        if not inspect(db.engine).has_table("mentors"):
            return
        from fixtures.demo_directory import seed_all  # локальный импорт, чтобы избежать циклов
        created = seed_all()
        if created:
            app.logger.info("seeded %s demo mentors", created)

def register_blueprints(app: Flask) -> None:
    # Жёстко импортируем модуль с маршрутами core перед взятием bp
    import_module("blueprints.core.routes")
    from blueprints.core import bp as core_bp
    from blueprints.availability.routes import api_bp as availability_api_bp
    from blueprints.bookings.routes import api_bp as bookings_api_bp
    from blueprints.matching.routes import api_bp as matching_api_bp
    from blueprints.reviews.routes import api_bp as reviews_api_bp
    from blueprints.mentees.routes import api_bp as mentees_api_bp

    # core без префикса → '/health' в корне
    app.register_blueprint(core_bp)
    app.register_blueprint(availability_api_bp)
    app.register_blueprint(bookings_api_bp)
    app.register_blueprint(matching_api_bp)
    app.register_blueprint(reviews_api_bp)
    app.register_blueprint(mentees_api_bp)

def register_collaborators(app: Flask) -> None:
    from blueprints.bookings.artifacts import LocalArtifactStore
    from blueprints.matching.ranking import SqlRankingStrategy
    app.extensions.setdefault("artifact_store", LocalArtifactStore(app.config["UPLOAD_FOLDER"]))
    app.extensions.setdefault("ranking_strategy", SqlRankingStrategy(limit=app.config.get("MATCHING_LIMIT", 20)))

def create_app(config_name: str | None = None, **overrides) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    cfg_name = config_name or os.getenv("FLASK_CONFIG", "default")
    app.config.from_object(config_map[cfg_name])
    # --- ВАЖНО: изоляция БД в тестах ---
    # pytest всегда выставляет переменную окружения PYTEST_CURRENT_TEST.
    # Делаем БД в памяти, чтобы никакие изменения из одного теста не протекали в другой.
    if os.environ.get("PYTEST_CURRENT_TEST"):
        app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite:///:memory:"
        app.config.setdefault("SQLALCHEMY_ENGINE_OPTIONS", {"connect_args": {"check_same_thread": False}})
    # явные переопределения сильнее тестовой БД в памяти
    app.config.update(overrides)

    try:
        os.makedirs(app.instance_path, exist_ok=True)
    except OSError:
        pass
    db.init_app(app)
    migrate.init_app(app, db)
    register_blueprints(app)
    register_collaborators(app)
    _seed_from_config(app)
    return app
