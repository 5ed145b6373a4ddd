# app.py

import os

from dotenv import load_dotenv
from flask import Flask

# Load environment variables from .env file first
load_dotenv()

# Module imports after load_dotenv() - E402 is intentional
from config import DevelopmentConfig, ProductionConfig, TestingConfig  # noqa: E402
from config.monitoring import (  # noqa: E402
    DevelopmentMonitoringConfig,
    ProductionMonitoringConfig,
    TestingMonitoringConfig,
)
from config.validation import validate_and_exit  # noqa: E402
from flask_app.identity import init_identity  # noqa: E402
from flask_app.models import configure_sqlite_engine, db  # noqa: E402
from flask_app.routes import init_routes  # noqa: E402
from flask_app.utils.error_handler import init_error_handlers  # noqa: E402
from flask_app.utils.logging_config import setup_logging  # noqa: E402

app = Flask(__name__)

# Validate environment variables (only in production)
flask_env = os.environ.get("FLASK_ENV", "development")
if flask_env == "production":
    validate_and_exit(flask_env)

# Load configuration based on the environment
if flask_env == "production":
    app.config.from_object(ProductionConfig)
    app.config.from_object(ProductionMonitoringConfig)
elif flask_env == "testing":
    app.config.from_object(TestingConfig)
    app.config.from_object(TestingMonitoringConfig)
else:
    app.config.from_object(DevelopmentConfig)
    app.config.from_object(DevelopmentMonitoringConfig)

app.json.sort_keys = False

# Initialize extensions
db.init_app(app)

# Initialize logging and error handling
setup_logging(app)
init_error_handlers(app)

with app.app_context():
    if db.engine.url.drivername.startswith("sqlite"):
        configure_sqlite_engine(db.engine)
    # Create the database tables only if not in testing mode
    if not app.config.get("TESTING", False):
        db.create_all()


# Initialize routes and CLI commands
init_routes(app)
init_identity(app)


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 3000))
    app.run(host="0.0.0.0", port=port)
