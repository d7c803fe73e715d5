import logging

import click
from flask import Flask, jsonify
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException

from config import Config
from models import db, serialize_sqlite_writes
from models.user import User, Role
from routes import health_bp, auth_bp, admin_bp, booking_bp, chamber_bp, schedule_bp
from scheduling.errors import SchedulingError
from scheduling.types import ROLE_ADMIN
from security.csrf import csrf_protect
from utils.auth_context import load_current_user
from utils.seed import seed_roles

logger = logging.getLogger(__name__)

BLUEPRINTS = (health_bp, auth_bp, admin_bp, booking_bp, chamber_bp, schedule_bp)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none';",
}


def create_app(config_object=None):
    app = Flask(__name__)
    app.config.from_object(config_object or Config)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    for bp in BLUEPRINTS:
        app.register_blueprint(bp)

    db.init_app(app)
    Migrate(app, db)

    with app.app_context():
        if app.config.get("SQLITE_BEGIN_IMMEDIATE"):
            serialize_sqlite_writes(db.engine)
        if app.config.get("CREATE_TABLES_ON_STARTUP"):
            db.create_all()
        seed_roles()

    # user first, the CSRF check needs g.user
    app.before_request(load_current_user)
    app.before_request(csrf_protect)

    register_error_handlers(app)

    @app.after_request
    def add_security_headers(resp):
        resp.headers.update(SECURITY_HEADERS)
        return resp

    register_cli(app)
    logger.info("chamberslot app created (db=%s)", app.config["SQLALCHEMY_DATABASE_URI"].split(":", 1)[0])
    return app


def register_error_handlers(app):
    @app.errorhandler(SchedulingError)
    def _scheduling_error(exc):
        return jsonify(**exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def _http_error(exc):
        return jsonify(error=exc.description, code=exc.name.upper().replace(" ", "_")), exc.code


def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Grant ADMIN to an existing user (bootstrap)."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if user is None:
            click.echo("User not found")
            return

        admin_role = Role.query.filter_by(name=ROLE_ADMIN).first()
        if admin_role is None:
            admin_role = Role(name=ROLE_ADMIN)
            db.session.add(admin_role)

        if admin_role not in user.roles:
            user.roles.append(admin_role)
        db.session.commit()

        logger.info("%s promoted to ADMIN", user.email)
        click.echo(f"{user.email} promoted to ADMIN")


if __name__ == "__main__":
    create_app().run(host="127.0.0.1", port=5002)
