"""
AWS Signature Version 4 signing for JSON POST requests.

Everything here is pure: the caller supplies the timestamp, so a fixed set of
inputs always yields the same headers.
"""

import hashlib
import hmac
from dataclasses import dataclass
from datetime import datetime, timezone

from ..constants import CONTENT_TYPE, SERVICE_NAME, SIGNING_ALGORITHM
from ..exceptions import MissingCredentialsError


@dataclass(frozen=True)
class Credentials:
    """Access key pair plus optional session token."""

    access_key_id: str
    secret_access_key: str
    session_token: str | None = None

    def __repr__(self) -> str:
        return f"Credentials(access_key_id={self.access_key_id!r}, secret_access_key='***')"


def amz_date(moment: datetime) -> str:
    """ISO-8601 basic UTC timestamp, e.g. 20150830T123600Z."""
    return _as_utc(moment).strftime("%Y%m%dT%H%M%SZ")


def date_stamp(moment: datetime) -> str:
    """UTC date, e.g. 20150830."""
    return _as_utc(moment).strftime("%Y%m%d")


def sha256_hex(data: str | bytes) -> str:
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def credential_scope(date: str, region: str, service: str = SERVICE_NAME) -> str:
    return f"{date}/{region}/{service}/aws4_request"


def build_canonical_request(
    headers: dict[str, str], payload_hash: str, path: str = "/", method: str = "POST"
) -> tuple[str, str]:
    """
    Build the canonical request for a request without query string.

    Args:
        headers: Header names (any case) to values; all of them are signed
        payload_hash: Hex SHA-256 of the body
        path: Canonical URI
        method: HTTP method

    Returns:
        Tuple of (canonical request, signed header list joined by ';')
    """
    normalized = {name.lower(): value.strip() for name, value in headers.items()}
    names = sorted(normalized)
    canonical_headers = "".join(f"{name}:{normalized[name]}\n" for name in names)
    signed_headers = ";".join(names)
    canonical = "\n".join(
        [method, path or "/", "", canonical_headers, signed_headers, payload_hash]
    )
    return canonical, signed_headers


def build_string_to_sign(timestamp: str, scope: str, canonical_request: str) -> str:
    return "\n".join([SIGNING_ALGORITHM, timestamp, scope, sha256_hex(canonical_request)])


def derive_signing_key(secret_access_key: str, date: str, region: str, service: str) -> bytes:
    k_date = _hmac(("AWS4" + secret_access_key).encode("utf-8"), date)
    k_region = _hmac(k_date, region)
    k_service = _hmac(k_region, service)
    return _hmac(k_service, "aws4_request")


def compute_signature(signing_key: bytes, string_to_sign: str) -> str:
    return hmac.new(signing_key, string_to_sign.encode("utf-8"), hashlib.sha256).hexdigest()


def sign_request(
    credentials: Credentials,
    region: str,
    host: str,
    target: str,
    body: str,
    timestamp: datetime | None = None,
    service: str = SERVICE_NAME,
    path: str = "/",
) -> dict[str, str]:
    """
    Compute the headers for one signed POST request.

    Args:
        credentials: Access key pair (and optional session token)
        region: Signing region
        host: Host header value (host[:port])
        target: x-amz-target value, e.g. DynamoDB_20120810.PutItem
        body: Exact JSON body that will be sent
        timestamp: Signing time (defaults to now, UTC)
        service: Signing service name
        path: Request path

    Returns:
        Headers to send, including authorization

    Raises:
        MissingCredentialsError: If the access key or secret key is empty
    """
    if not credentials.access_key_id or not credentials.secret_access_key:
        raise MissingCredentialsError("Both an access key id and a secret access key are required")

    moment = timestamp or datetime.now(timezone.utc)
    request_date = amz_date(moment)
    scope_date = date_stamp(moment)

    headers = {
        "content-type": CONTENT_TYPE,
        "host": host,
        "x-amz-date": request_date,
        "x-amz-target": target,
    }
    if credentials.session_token:
        headers["x-amz-security-token"] = credentials.session_token

    canonical, signed_headers = build_canonical_request(headers, sha256_hex(body), path)
    scope = credential_scope(scope_date, region, service)
    string_to_sign = build_string_to_sign(request_date, scope, canonical)
    signing_key = derive_signing_key(credentials.secret_access_key, scope_date, region, service)
    signature = compute_signature(signing_key, string_to_sign)

    headers["authorization"] = (
        f"{SIGNING_ALGORITHM} Credential={credentials.access_key_id}/{scope}, "
        f"SignedHeaders={signed_headers}, Signature={signature}"
    )
    return headers


def _hmac(key: bytes, message: str) -> bytes:
    return hmac.new(key, message.encode("utf-8"), hashlib.sha256).digest()


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)
