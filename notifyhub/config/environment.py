"""Environment variable loading and validation."""

import os
from typing import List, Optional

from email_validator import EmailNotValidError, validate_email

from .exceptions import ConfigurationError

DEFAULT_DATABASE_URL = "sqlite:///./data/notifyhub.db"
DEFAULT_FROM_NAME = "Notification System"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class EnvironmentConfig:
    """Secrets and deployment settings read from the process environment."""

    def __init__(
        self,
        smtp_host: str,
        smtp_port: int,
        smtp_user: Optional[str] = None,
        smtp_pass: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
        log_level: Optional[str] = None,
        database_url: Optional[str] = None,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_pass = smtp_pass
        self.from_email = from_email
        self.from_name = from_name or DEFAULT_FROM_NAME
        self.log_level = log_level
        self.database_url = database_url or DEFAULT_DATABASE_URL

    @property
    def has_credentials(self) -> bool:
        return bool(self.smtp_user and self.smtp_pass)


def load_environment_config() -> EnvironmentConfig:
    """
    Load and validate environment variables.

    Required:
    - SMTP_HOST: SMTP server hostname
    - SMTP_PORT: SMTP server port (1-65535); 465 means implicit TLS

    Optional:
    - SMTP_USER / SMTP_PASS: SMTP credentials (both or neither)
    - FROM_EMAIL: Sender address (defaults to SMTP_USER, then noreply@SMTP_HOST)
    - FROM_NAME: Sender display name
    - DATABASE_URL: SQLAlchemy URL (default: sqlite:///./data/notifyhub.db)
    - LOG_LEVEL: Override log level

    Raises:
        ConfigurationError: If required variables are missing or invalid
    """
    errors: List[str] = []

    smtp_host = (os.getenv("SMTP_HOST") or "").strip()
    smtp_port_raw = (os.getenv("SMTP_PORT") or "").strip()
    smtp_user = os.getenv("SMTP_USER") or None
    smtp_pass = os.getenv("SMTP_PASS") or None
    from_email = (os.getenv("FROM_EMAIL") or "").strip() or None
    from_name = os.getenv("FROM_NAME") or None
    log_level = os.getenv("LOG_LEVEL") or None
    database_url = os.getenv("DATABASE_URL") or None

    if not smtp_host:
        errors.append("Missing required environment variable: SMTP_HOST")

    smtp_port = 0
    if not smtp_port_raw:
        errors.append("Missing required environment variable: SMTP_PORT")
    else:
        try:
            smtp_port = int(smtp_port_raw)
        except ValueError:
            errors.append(f"Invalid SMTP_PORT: '{smtp_port_raw}'. Must be a valid integer.")
        else:
            if not 1 <= smtp_port <= 65535:
                errors.append(f"Invalid SMTP_PORT: {smtp_port}. Must be between 1 and 65535.")

    if bool(smtp_user) != bool(smtp_pass):
        errors.append("SMTP_USER and SMTP_PASS must be set together (or both left unset).")

    if from_email:
        try:
            from_email = validate_email(from_email, check_deliverability=False).normalized
        except EmailNotValidError as e:
            errors.append(f"Invalid FROM_EMAIL '{from_email}': {e}")

    if log_level and log_level.upper() not in VALID_LOG_LEVELS:
        errors.append(
            f"Invalid LOG_LEVEL: '{log_level}'. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
        )

    if errors:
        raise ConfigurationError(
            "Environment variable validation failed",
            errors=errors,
            suggestions=[
                "Copy .env.example to .env and fill in your SMTP settings",
                "Ensure SMTP_HOST and SMTP_PORT are set",
            ],
        )

    return EnvironmentConfig(
        smtp_host=smtp_host,
        smtp_port=smtp_port,
        smtp_user=smtp_user,
        smtp_pass=smtp_pass,
        from_email=from_email,
        from_name=from_name,
        log_level=log_level.upper() if log_level else None,
        database_url=database_url,
    )
