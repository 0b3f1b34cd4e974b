"""AWS Signature Version 4 for JSON POST requests.

Hides the signing algorithm. The output must match AWS bit for bit: header
order, casing and canonical URI encoding all feed the signature, so any
deviation is rejected with no partial credit.

Reference: https://docs.aws.amazon.com/IAM/latest/UserGuide/reference_sigv-create-signed-request.html
"""

import hashlib
import hmac
from dataclasses import dataclass
from datetime import datetime, timezone
from urllib.parse import quote

from .credentials import AwsCredentials

ALGORITHM = "AWS4-HMAC-SHA256"
TERMINATOR = "aws4_request"

# RFC 3986 unreserved characters stay literal; "/" separates segments.
_UNRESERVED = "-_.~"


@dataclass(frozen=True)
class SignedRequest:
    """Headers to attach plus the intermediate strings, for debugging."""

    headers: dict[str, str]
    canonical_request: str
    string_to_sign: str
    signature: str


def sha256_hex(data: bytes | str) -> str:
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def _hmac(key: bytes, message: str) -> bytes:
    return hmac.new(key, message.encode("utf-8"), hashlib.sha256).digest()


def derive_signing_key(secret_key: str, date_stamp: str, region: str, service: str) -> bytes:
    """Chain HMAC-SHA256 over date, region, service and the terminator."""
    k_date = _hmac(f"AWS4{secret_key}".encode("utf-8"), date_stamp)
    k_region = _hmac(k_date, region)
    k_service = _hmac(k_region, service)
    return _hmac(k_service, TERMINATOR)


def encode_path_segment(segment: str) -> str:
    """Percent-encode one path segment (``/`` and ``:`` included)."""
    return quote(segment, safe=_UNRESERVED)


def canonical_uri(path: str) -> str:
    """Canonical form of an already-encoded request path.

    Every service except S3 encodes the wire path a second time, so a wire
    ``%3A`` becomes ``%253A`` here.
    """
    return quote(path or "/", safe="/" + _UNRESERVED)


def sign_request(
    method: str,
    host: str,
    path: str,
    body: bytes,
    credentials: AwsCredentials,
    region: str,
    service: str,
    timestamp: datetime | None = None
) -> SignedRequest:
    """Sign a request with an empty query string.

    Args:
        method: HTTP method
        host: Host header value
        path: Request path exactly as sent on the wire (already encoded)
        body: Exact request body bytes
        credentials: Valid AWS credentials
        region: AWS region, e.g. us-east-1
        service: Signing service name, e.g. bedrock
        timestamp: Signing time (default: now)

    Returns:
        SignedRequest whose headers include Authorization, X-Amz-Date,
        X-Amz-Content-Sha256 and, for temporary credentials,
        X-Amz-Security-Token

    Raises:
        ValueError: If the credentials are incomplete
    """
    if not credentials.is_valid:
        raise ValueError("Cannot sign a request without an access key and secret key")

    now = (timestamp or datetime.now(timezone.utc)).astimezone(timezone.utc)
    amz_date = now.strftime("%Y%m%dT%H%M%SZ")
    date_stamp = now.strftime("%Y%m%d")
    content_hash = sha256_hex(body)

    # Lower-cased names in sorted order; the same order names the signed headers.
    canonical_headers = [
        ("host", host.strip()),
        ("x-amz-content-sha256", content_hash),
        ("x-amz-date", amz_date),
    ]
    if credentials.session_token:
        canonical_headers.append(("x-amz-security-token", credentials.session_token))

    header_block = "".join(f"{name}:{value}\n" for name, value in canonical_headers)
    signed_headers = ";".join(name for name, _ in canonical_headers)

    canonical_request = "\n".join([
        method.upper(),
        canonical_uri(path),
        "",
        header_block,
        signed_headers,
        content_hash,
    ])

    scope = f"{date_stamp}/{region}/{service}/{TERMINATOR}"
    string_to_sign = "\n".join([
        ALGORITHM,
        amz_date,
        scope,
        sha256_hex(canonical_request),
    ])

    signing_key = derive_signing_key(credentials.secret_key, date_stamp, region, service)
    signature = hmac.new(signing_key, string_to_sign.encode("utf-8"), hashlib.sha256).hexdigest()

    headers = {
        "Authorization": (
            f"{ALGORITHM} Credential={credentials.access_key}/{scope}, "
            f"SignedHeaders={signed_headers}, Signature={signature}"
        ),
        "X-Amz-Date": amz_date,
        "X-Amz-Content-Sha256": content_hash,
    }
    if credentials.session_token:
        headers["X-Amz-Security-Token"] = credentials.session_token

    return SignedRequest(
        headers=headers,
        canonical_request=canonical_request,
        string_to_sign=string_to_sign,
        signature=signature,
    )
