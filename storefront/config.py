import os


class Config:
    """Base configuration. Shared across all environments."""

    # --- Required ---
    SECRET_KEY = os.environ.get("SECRET_KEY")

    # Handle DATABASE_URL: some PaaS providers (Railway, Heroku) use
    # "postgres://" which SQLAlchemy 1.4+ doesn't accept.
    _db_url = os.environ.get("DATABASE_URL", "")
    if _db_url.startswith("postgres://"):
        _db_url = _db_url.replace("postgres://", "postgresql://", 1)
    SQLALCHEMY_DATABASE_URI = _db_url or None

    APP_BASE_URL = os.environ.get("APP_BASE_URL", "http://localhost:5000")

    # --- OY! Indonesia payment gateway ---
    OY_BASE_URL = os.environ.get("OY_BASE_URL", "https://api-stg.oyindonesia.com")
    OY_USERNAME = os.environ.get("OY_USERNAME")
    OY_API_KEY = os.environ.get("OY_API_KEY")
    OY_CALLBACK_SECRET = os.environ.get("OY_CALLBACK_SECRET")
    OY_LINK_EXPIRATION_MINUTES = int(os.environ.get("OY_LINK_EXPIRATION_MINUTES", 24 * 60))
    OY_TIMEOUT_SECONDS = int(os.environ.get("OY_TIMEOUT_SECONDS", 30))

    # --- Email ---
    # "smtp" (any SMTP relay) or "resend" (hosted email API)
    MAIL_TRANSPORT = os.environ.get("MAIL_TRANSPORT", "smtp").lower()
    MAIL_SMTP_HOST = os.environ.get("MAIL_SMTP_HOST", "smtp.gmail.com")
    MAIL_SMTP_PORT = int(os.environ.get("MAIL_SMTP_PORT", 587))
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD")
    RESEND_API_KEY = os.environ.get("RESEND_API_KEY")
    RESEND_API_URL = os.environ.get("RESEND_API_URL", "https://api.resend.com/emails")
    MAIL_FROM_NAME = os.environ.get("MAIL_FROM_NAME", "Storefront")
    MAIL_FROM_ADDRESS = os.environ.get("MAIL_FROM_ADDRESS")  # defaults to MAIL_USERNAME
    MAIL_ADMIN_ADDRESS = os.environ.get("MAIL_ADMIN_ADDRESS", "admin@example.com")

    # --- Digital delivery ---
    DOWNLOAD_LINK_TTL_DAYS = int(os.environ.get("DOWNLOAD_LINK_TTL_DAYS", 7))

    # --- SQLAlchemy ---
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }

    # --- Session / cookies ---
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    REMEMBER_COOKIE_HTTPONLY = True
    REMEMBER_COOKIE_SAMESITE = "Lax"

    # --- WTF / CSRF ---
    WTF_CSRF_ENABLED = True

    @staticmethod
    def validate():
        """Fail fast if required env vars are missing."""
        required = [
            "SECRET_KEY",
            "DATABASE_URL",
            "APP_BASE_URL",
            "OY_API_KEY",
            "OY_CALLBACK_SECRET",
        ]
        transport = os.environ.get("MAIL_TRANSPORT", "smtp").lower()
        if transport == "resend":
            required.append("RESEND_API_KEY")
        else:
            required.extend(["MAIL_USERNAME", "MAIL_PASSWORD"])
        missing = [v for v in required if not os.environ.get(v)]
        if missing:
            raise RuntimeError(
                f"Missing required environment variables: {', '.join(missing)}"
            )


class DevConfig(Config):
    """Local development."""

    DEBUG = True
    SESSION_COOKIE_SECURE = False
    REMEMBER_COOKIE_SECURE = False


class TestConfig(Config):
    """Testing — in-memory SQLite, CSRF disabled."""

    TESTING = True
    DEBUG = True
    SECRET_KEY = "test-secret-key-not-for-production"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    APP_BASE_URL = "http://localhost:5000"
    OY_BASE_URL = "https://oy.test"
    OY_USERNAME = "oy_user_test"
    OY_API_KEY = "oy_key_test"
    OY_CALLBACK_SECRET = "oy_callback_secret_test"
    MAIL_TRANSPORT = "smtp"
    MAIL_USERNAME = "shop@test.local"
    MAIL_PASSWORD = "mail_password_test"
    MAIL_FROM_ADDRESS = "shop@test.local"
    MAIL_ADMIN_ADDRESS = "owner@test.local"
    RESEND_API_KEY = "re_test_fake"
    WTF_CSRF_ENABLED = False  # disable CSRF for test requests
    RATELIMIT_ENABLED = False  # disable rate limiting in tests
    SESSION_COOKIE_SECURE = False
    REMEMBER_COOKIE_SECURE = False
    SERVER_NAME = "localhost"

    @staticmethod
    def validate():
        """Skip validation in test mode — everything is hardcoded."""
        pass


class ProdConfig(Config):
    """Production."""

    DEBUG = False
    SESSION_COOKIE_SECURE = True
    REMEMBER_COOKIE_SECURE = True


config_by_name = {
    "development": DevConfig,
    "production": ProdConfig,
    "testing": TestConfig,
}
