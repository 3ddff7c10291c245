from dotenv import load_dotenv
from flask import Flask
from flasgger import Swagger

from .config import Config
from .errors import register_error_handlers
from .extensions import db, migrate, jwt, ma, mail
from .swagger_config import swagger_template
from .middleware.request_id import init_request_id

load_dotenv()

def create_app(config_class=Config) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    Swagger(app, template=swagger_template(app))
    # Extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    ma.init_app(app)
    mail.init_app(app)

    # Middleware + errors
    init_request_id(app)
    register_error_handlers(app)

    # Models must be imported before migrations/create_all see the metadata
    from . import models  # noqa: F401

    # Blueprint imports
    from .api.ballots.routes import ballots_bp
    from .api.voters.routes import voters_bp
    from .api.voting.routes import voting_bp
    from .api.results.routes import results_bp
    from .api.elections.routes import elections_bp

    # Blueprints
    app.register_blueprint(ballots_bp, url_prefix="/api/ballots")
    app.register_blueprint(voters_bp, url_prefix="/api/ballots")
    app.register_blueprint(voting_bp, url_prefix="/api/ballots")
    app.register_blueprint(results_bp, url_prefix="/api/ballots")
    app.register_blueprint(elections_bp, url_prefix="/api/elections")

    # Health check
    @app.get("/health")
    def health():
        return {"status": "ok"}, 200

    return app
