"""AWS credential resolution and SigV4 request signing."""

from .credentials import AwsCredentials, resolve_credentials
from .sigv4 import SignedRequest, derive_signing_key, sign_request

__all__ = [
    "AwsCredentials",
    "SignedRequest",
    "derive_signing_key",
    "resolve_credentials",
    "sign_request",
]
