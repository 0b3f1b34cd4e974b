"""AWS credential resolution.

Hides where Bedrock credentials come from. Sources are consulted in a fixed
order and the winning source is recorded as provenance:

1. Explicit settings (``settings``)
2. Environment variables (``environment``)
3. Shared credentials file profile (``file:<profile>``)

A key pair is only taken from a source that supplies both halves, and the
session token always comes from that same source.
"""

import configparser
import logging
import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

ACCESS_KEY_ENV = "AWS_ACCESS_KEY_ID"
SECRET_KEY_ENV = "AWS_SECRET_ACCESS_KEY"
SESSION_TOKEN_ENV = "AWS_SESSION_TOKEN"
PROFILE_ENV = "AWS_DEFAULT_PROFILE"
DEFAULT_PROFILE = "default"

PROVENANCE_SETTINGS = "settings"
PROVENANCE_ENVIRONMENT = "environment"
PROVENANCE_NONE = "none"


class AwsCredentials(BaseModel):
    """A resolved AWS key pair and where it came from."""

    model_config = ConfigDict(frozen=True)

    access_key: str | None = Field(default=None, repr=False)
    secret_key: str | None = Field(default=None, repr=False)
    session_token: str | None = Field(default=None, repr=False)
    provenance: str = Field(
        default=PROVENANCE_NONE,
        description="settings, environment, file:<profile> or none"
    )

    @property
    def is_valid(self) -> bool:
        return bool(self.access_key) and bool(self.secret_key)


def normalize(value: str | None) -> str | None:
    """Trim a value, mapping blank strings to None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def effective_profile(environ: Mapping[str, str] | None = None) -> str:
    """Profile named by AWS_DEFAULT_PROFILE, or ``default``."""
    env = os.environ if environ is None else environ
    return normalize(env.get(PROFILE_ENV)) or DEFAULT_PROFILE


def credentials_file(home: Path | None = None) -> Path:
    """Location of the shared credentials file."""
    return (home or Path.home()) / ".aws" / "credentials"


def _pair(
    access_key: str | None,
    secret_key: str | None,
    session_token: str | None,
    provenance: str
) -> AwsCredentials | None:
    access_key, secret_key = normalize(access_key), normalize(secret_key)
    if not access_key or not secret_key:
        return None
    return AwsCredentials(
        access_key=access_key,
        secret_key=secret_key,
        session_token=normalize(session_token),
        provenance=provenance,
    )


def load_from_env(environ: Mapping[str, str] | None = None) -> AwsCredentials | None:
    """Credentials from environment variables, or None if incomplete."""
    env = os.environ if environ is None else environ
    return _pair(
        env.get(ACCESS_KEY_ENV),
        env.get(SECRET_KEY_ENV),
        env.get(SESSION_TOKEN_ENV),
        PROVENANCE_ENVIRONMENT,
    )


def load_from_file(profile: str, home: Path | None = None) -> AwsCredentials | None:
    """Credentials for one profile of the shared credentials file.

    Returns:
        Credentials, or None if the file is missing, unreadable, malformed,
        lacks the profile, or the profile lacks either key
    """
    path = credentials_file(home)
    if not path.is_file():
        return None

    parser = configparser.ConfigParser(interpolation=None)
    try:
        with path.open(encoding="utf-8") as handle:
            parser.read_file(handle)
    except (OSError, configparser.Error) as e:
        logger.warning("Could not read AWS credentials file %s: %s", path, e)
        return None

    if not parser.has_section(profile):
        return None
    section = parser[profile]
    return _pair(
        section.get("aws_access_key_id"),
        section.get("aws_secret_access_key"),
        section.get("aws_session_token"),
        f"file:{profile}",
    )


def resolve_credentials(
    access_key: str | None = None,
    secret_key: str | None = None,
    session_token: str | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    home: Path | None = None
) -> AwsCredentials:
    """Resolve credentials from settings, environment, then credentials file.

    Args:
        access_key: Explicit access key from settings
        secret_key: Explicit secret key from settings
        session_token: Explicit session token from settings
        environ: Mapping to read instead of ``os.environ``
        home: Home directory to look for ``.aws/credentials`` in

    Returns:
        Resolved credentials; provenance ``none`` and ``is_valid`` False when
        no source supplies a complete key pair
    """
    explicit = _pair(access_key, secret_key, session_token, PROVENANCE_SETTINGS)
    if explicit:
        return explicit

    from_env = load_from_env(environ)
    if from_env:
        return from_env

    from_file = load_from_file(effective_profile(environ), home)
    if from_file:
        return from_file

    return AwsCredentials()
