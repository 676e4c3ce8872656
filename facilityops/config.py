import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Base configuration class with common settings."""
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")

    # Links embedded in notification texts point at the web app
    APP_BASE_URL = os.environ.get("APP_BASE_URL", "")

    # Twilio SMS delivery (sending is skipped when any of these is missing)
    TWILIO_ACCOUNT_SID = os.environ.get("TWILIO_ACCOUNT_SID")
    TWILIO_AUTH_TOKEN = os.environ.get("TWILIO_AUTH_TOKEN")
    TWILIO_FROM_NUMBER = os.environ.get("TWILIO_FROM_NUMBER")
    TWILIO_API_BASE_URL = os.environ.get("TWILIO_API_BASE_URL", "https://api.twilio.com/2010-04-01")
    TWILIO_TIMEOUT_SECONDS = float(os.environ.get("TWILIO_TIMEOUT_SECONDS", "10"))

    # Notification worker
    NOTIFY_POLL_INTERVAL_SECONDS = float(os.environ.get("NOTIFY_POLL_INTERVAL_SECONDS", "3"))
    NOTIFY_CLAIM_LIMIT = int(os.environ.get("NOTIFY_CLAIM_LIMIT", "25"))
    # Run the worker inside the web process on an APScheduler thread
    RUN_NOTIFICATION_WORKER = os.environ.get("RUN_NOTIFICATION_WORKER", "").lower() in ("1", "true", "yes")
    # Werkzeug reloader for run.py; the scheduler only starts in the reloaded child
    USE_RELOADER = os.environ.get("USE_RELOADER", "").lower() in ("1", "true", "yes")

    # Completion photos
    UPLOAD_DIR = os.environ.get("UPLOAD_DIR", "uploads")
    MAX_CONTENT_LENGTH = 5 * 1024 * 1024 * 10  # 10 photos of 5MB

    # CORS configuration
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Logging
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
    LOG_FILE = os.environ.get("LOG_FILE")


class LocalConfig(Config):
    """Configuration for local development."""
    ENV = "local"
    DEBUG = True


class SandboxConfig(Config):
    """Configuration for sandbox/staging environment."""
    ENV = "sandbox"
    DEBUG = False


class ProductionConfig(Config):
    """Configuration for production environment."""
    ENV = "production"
    DEBUG = False


def get_config():
    """Get the appropriate configuration class based on environment variable.
    
    Environment is determined by FLASK_ENV or ENVIRONMENT variable:
    - 'local' or 'development' -> LocalConfig
    - 'sandbox' or 'staging' -> SandboxConfig
    - 'production' or 'prod' -> ProductionConfig
    
    Defaults to LocalConfig if not set.
    """
    env = (os.environ.get("FLASK_ENV") or os.environ.get("ENVIRONMENT", "local")).lower()
    
    if env in ["local", "development", "dev"]:
        return LocalConfig
    elif env in ["sandbox", "staging", "stage"]:
        return SandboxConfig
    elif env in ["production", "prod"]:
        return ProductionConfig
    else:
        # Default to local for safety
        return LocalConfig
