"""
Runtime settings.

Settings are plain dataclasses, built explicitly or from ``GOMSLE_*``
environment variables.
"""

import os
from dataclasses import dataclass
from typing import Optional


def _env_bool(name: str, default: bool) -> bool:
    return os.environ.get(name, str(default)).lower() in ("1", "true", "yes")


@dataclass
class SmtpSettings:
    """Connection settings for the SMTP notification gateway."""

    host: str = "localhost"
    port: int = 1025
    user: Optional[str] = None
    password: Optional[str] = None
    use_ssl: bool = False
    use_starttls: bool = False
    timeout: int = 10

    @classmethod
    def from_env(cls) -> "SmtpSettings":
        return cls(
            host=os.environ.get("GOMSLE_SMTP_HOST", "localhost"),
            port=int(os.environ.get("GOMSLE_SMTP_PORT", "1025")),
            user=os.environ.get("GOMSLE_SMTP_USER"),
            password=os.environ.get("GOMSLE_SMTP_PASSWORD"),
            use_ssl=_env_bool("GOMSLE_SMTP_USE_SSL", False),
            use_starttls=_env_bool("GOMSLE_SMTP_USE_STARTTLS", False),
            timeout=int(os.environ.get("GOMSLE_SMTP_TIMEOUT", "10")),
        )


@dataclass
class GomsleSettings:
    """Configuration for the authorization server."""

    issuer: str  # e.g., "https://id.gomsle.com"
    signing_key: str
    signing_algorithm: str = "HS256"

    # Lifetimes (seconds)
    access_token_lifetime: int = 3600
    id_token_lifetime: int = 3600
    refresh_token_lifetime: int = 14 * 24 * 3600
    authorization_code_lifetime: int = 300
    authorization_request_lifetime: int = 1800
    invitation_lifetime: int = 7 * 24 * 3600

    # Where the boundary sends users that must sign in first
    login_url: str = "/account/login"

    # Notifications
    email_from: str = "noreply@gomsle.com"
    email_backend: str = "console"  # console, smtp
    smtp: Optional[SmtpSettings] = None

    @classmethod
    def from_env(cls) -> "GomsleSettings":
        """
        Build settings from the environment.

        ``GOMSLE_ISSUER`` and ``GOMSLE_SIGNING_KEY`` are required.
        """
        issuer = os.environ.get("GOMSLE_ISSUER")
        signing_key = os.environ.get("GOMSLE_SIGNING_KEY")
        if not issuer or not signing_key:
            raise ValueError(
                "GOMSLE_ISSUER and GOMSLE_SIGNING_KEY must be set"
            )

        backend = os.environ.get("GOMSLE_EMAIL_BACKEND", "console")
        return cls(
            issuer=issuer,
            signing_key=signing_key,
            signing_algorithm=os.environ.get("GOMSLE_SIGNING_ALGORITHM", "HS256"),
            access_token_lifetime=int(
                os.environ.get("GOMSLE_ACCESS_TOKEN_LIFETIME", "3600")
            ),
            id_token_lifetime=int(os.environ.get("GOMSLE_ID_TOKEN_LIFETIME", "3600")),
            refresh_token_lifetime=int(
                os.environ.get("GOMSLE_REFRESH_TOKEN_LIFETIME", str(14 * 24 * 3600))
            ),
            authorization_code_lifetime=int(
                os.environ.get("GOMSLE_AUTHORIZATION_CODE_LIFETIME", "300")
            ),
            authorization_request_lifetime=int(
                os.environ.get("GOMSLE_AUTHORIZATION_REQUEST_LIFETIME", "1800")
            ),
            invitation_lifetime=int(
                os.environ.get("GOMSLE_INVITATION_LIFETIME", str(7 * 24 * 3600))
            ),
            login_url=os.environ.get("GOMSLE_LOGIN_URL", "/account/login"),
            email_from=os.environ.get("GOMSLE_EMAIL_FROM", "noreply@gomsle.com"),
            email_backend=backend,
            smtp=SmtpSettings.from_env() if backend == "smtp" else None,
        )
