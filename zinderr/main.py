import os

import click
from flask import Flask
from flask.cli import AppGroup

from .config import DevelopmentConfig, ProductionConfig, TestingConfig
from .extensions import db, migrate, jwt, ma, cors, bcrypt

CONFIGS = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}


def create_app(config_name=None):
    app = Flask(__name__, instance_relative_config=False)
    env = config_name or os.getenv("FLASK_ENV", "development")
    app.config.from_object(CONFIGS.get(env, DevelopmentConfig))

    app.logger.setLevel(app.config["LOG_LEVEL"])

    # models must be imported before create_all / migrations
    from zinderr.models import (  # noqa: F401
        user,
        errand,
        bid,
        mutual_rating,
        transaction,
        wallet,
        chat_message,
        location_update,
        notification,
    )

    # initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    ma.init_app(app)
    origins = [o.strip() for o in app.config["CORS_ORIGINS"].split(",")]
    cors.init_app(
        app,
        resources={r"/api/*": {"origins": origins}},
        supports_credentials=True,
        allow_headers=["Content-Type", "Authorization"],
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    )
    bcrypt.init_app(app)

    # register blueprints
    from zinderr.routes.auth_routes import bp as auth_bp
    from zinderr.routes.errand_routes import bp as errand_bp
    from zinderr.routes.bid_routes import bp as bid_bp
    from zinderr.routes.rating_routes import bp as rating_bp
    from zinderr.routes.chat_routes import bp as chat_bp
    from zinderr.routes.wallet_routes import bp as wallet_bp
    from zinderr.routes.notification_routes import bp as notification_bp
    from zinderr.routes.admin_routes import bp as admin_bp
    from zinderr.routes.profile_routes import bp as profile_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(errand_bp)
    app.register_blueprint(bid_bp)
    app.register_blueprint(rating_bp)
    app.register_blueprint(chat_bp)
    app.register_blueprint(wallet_bp)
    app.register_blueprint(notification_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(profile_bp)

    # error handlers to match required error format
    from zinderr.utils.exceptions import ServiceError
    from zinderr.utils.response_formatter import error_response, service_error_response

    @app.errorhandler(ServiceError)
    def service_error(e):
        if e.status >= 500:
            app.logger.warning("%s: %s", e.code, e.message)
        return service_error_response(e)

    @app.errorhandler(400)
    def bad_request(e):
        return error_response("BAD_REQUEST", str(e), status=400)

    @app.errorhandler(401)
    def unauthorized(e):
        return error_response("UNAUTHORIZED", str(e), status=401)

    @app.errorhandler(404)
    def not_found(e):
        return error_response("NOT_FOUND", "Resource not found", status=404)

    @app.errorhandler(405)
    def method_not_allowed(e):
        return error_response("METHOD_NOT_ALLOWED", str(e), status=405)

    @app.errorhandler(500)
    def server_error(e):
        return error_response("SERVER_ERROR", "Internal server error", status=500)

    register_commands(app)

    return app


def register_commands(app):
    ratings_cli = AppGroup("ratings", help="Mutual rating maintenance.")

    @ratings_cli.command("release")
    def release_ratings():
        """Reveal hidden ratings whose 24h window has passed."""
        from zinderr.services.lifecycle import release_expired_ratings

        released = release_expired_ratings()
        click.echo(f"Released {len(released)} rating(s).")

    app.cli.add_command(ratings_cli)

    @app.cli.command("reset-db")
    def reset_db():
        db.drop_all()
        db.create_all()
        click.echo("Database reset complete.")
