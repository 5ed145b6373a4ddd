# config/base.py
import os

# Lower levels let two resolutions read the same empty cluster and both
# insert a primary
VALID_ISOLATION_LEVELS = ("SERIALIZABLE",)


def _coerce_bool(value, default=False):
    """Convert environment-style truthy/falsey values to bool."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    value_str = str(value).strip().lower()
    if value_str in {"1", "true", "yes", "on"}:
        return True
    if value_str in {"0", "false", "no", "off"}:
        return False
    return default


def _coerce_int(value, default, *, minimum=None):
    """
    Parse an integer setting, falling back to ``default`` on bad input.

    Values below ``minimum`` are clamped up to it.
    """
    if value is None or str(value).strip() == "":
        return default
    try:
        number = int(str(value).strip())
    except ValueError:
        return default
    if minimum is not None and number < minimum:
        return minimum
    return number


def _coerce_float(value, default, *, minimum=0.0):
    if value is None or str(value).strip() == "":
        return default
    try:
        number = float(str(value).strip())
    except ValueError:
        return default
    return max(minimum, number)


def _normalize_isolation_level(value, default="SERIALIZABLE"):
    """Upper-case an isolation level name; unsupported levels fall back to ``default``."""
    if not value:
        return default
    level = " ".join(str(value).replace("_", " ").split()).upper()
    if level not in VALID_ISOLATION_LEVELS:
        return default
    return level


def _normalize_database_url(uri):
    # Heroku-style URLs still use the legacy scheme
    if uri and uri.startswith("postgres://"):
        uri = uri.replace("postgres://", "postgresql://", 1)
    return uri


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-in-production")

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {}

    # Identity resolution
    IDENTITY_MAX_ATTEMPTS = _coerce_int(os.environ.get("IDENTITY_MAX_ATTEMPTS"), 3, minimum=1)
    IDENTITY_RETRY_BACKOFF_SECONDS = _coerce_float(
        os.environ.get("IDENTITY_RETRY_BACKOFF_SECONDS"), 0.05
    )
    IDENTITY_ISOLATION_LEVEL = _normalize_isolation_level(
        os.environ.get("IDENTITY_ISOLATION_LEVEL"), default="SERIALIZABLE"
    )


class DevelopmentConfig(Config):
    DEBUG = True
    # Use instance folder for database to avoid conflicts
    _config_dir = os.path.dirname(os.path.abspath(__file__))
    _project_root = os.path.dirname(_config_dir)
    instance_path = os.path.join(_project_root, "instance")

    if not os.path.exists(instance_path):
        os.makedirs(instance_path, exist_ok=True)

    # SQLite URI format: sqlite:///absolute/path (3 slashes for absolute path)
    db_path = os.path.join(instance_path, "identity_dev.db").replace("\\", "/")
    db_uri = f"sqlite:///{db_path}"

    SQLALCHEMY_DATABASE_URI = _normalize_database_url(os.environ.get("DATABASE_URL", db_uri))
    SQLALCHEMY_ECHO = _coerce_bool(os.environ.get("SQLALCHEMY_ECHO"), default=False)
    if SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
        SQLALCHEMY_ENGINE_OPTIONS = {
            "connect_args": {
                "check_same_thread": False,
                "timeout": 5,
            }
        }
    else:
        SQLALCHEMY_ENGINE_OPTIONS = {
            "isolation_level": Config.IDENTITY_ISOLATION_LEVEL,
            "pool_pre_ping": True,
        }


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get("SECRET_KEY", "test-secret-key-for-testing-only")
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"  # In-memory database for testing
    SQLALCHEMY_ECHO = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "connect_args": {
            "check_same_thread": False,
            "timeout": 5,
        }
    }
    IDENTITY_RETRY_BACKOFF_SECONDS = 0.0


class ProductionConfig(Config):
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = _normalize_database_url(os.environ.get("DATABASE_URL"))
    SQLALCHEMY_ECHO = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "isolation_level": Config.IDENTITY_ISOLATION_LEVEL,
        "pool_pre_ping": True,
    }
