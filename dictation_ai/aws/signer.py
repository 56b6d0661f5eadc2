"""AWS Signature Version 4 request signing through botocore.

botocore's `SigV4Auth.add_auth` stamps the current time onto the request,
so the signing steps are driven one by one with the timestamp pinned on
`request.context`. Same inputs always give the same headers.
"""

from datetime import datetime, timezone
from urllib.parse import urlsplit

from botocore.auth import SIGV4_TIMESTAMP, SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials

from dictation_ai.aws.profiles import AWSCredentials

ALGORITHM = "AWS4-HMAC-SHA256"


def _set_header(request: AWSRequest, name: str, value: str) -> None:
    # HTTPHeaders appends on assignment; drop any earlier value first
    del request.headers[name]
    request.headers[name] = value


def _prepare(
    method: str,
    url: str,
    headers: dict[str, str],
    body: bytes,
    credentials: AWSCredentials,
    region: str,
    service: str,
    timestamp: datetime | None,
) -> tuple[SigV4Auth, AWSRequest]:
    """Auth object plus a request carrying every header that gets signed."""
    when = (timestamp or datetime.now(timezone.utc)).astimezone(timezone.utc)
    auth = SigV4Auth(
        Credentials(
            credentials.access_key_id,
            credentials.secret_access_key,
            credentials.session_token or None,
        ),
        service,
        region,
    )
    request = AWSRequest(
        method=method.upper(),
        url=url,
        data=body,
        headers={k: v for k, v in headers.items() if k.lower() != "authorization"},
    )
    request.context["timestamp"] = when.strftime(SIGV4_TIMESTAMP)

    if "host" not in request.headers:
        request.headers["host"] = urlsplit(url).netloc
    _set_header(request, "x-amz-date", request.context["timestamp"])
    _set_header(request, "x-amz-content-sha256", auth.payload(request))
    # Token must be part of the signature, so it goes in before signing
    if credentials.session_token:
        _set_header(request, "x-amz-security-token", credentials.session_token)
    return auth, request


def canonical_request(
    method: str,
    url: str,
    headers: dict[str, str],
    body: bytes,
    credentials: AWSCredentials,
    region: str,
    service: str,
    timestamp: datetime | None = None,
) -> str:
    """The canonical request text `sign_request` hashes, for diagnostics."""
    auth, request = _prepare(method, url, headers, body, credentials, region, service, timestamp)
    return auth.canonical_request(request)


def sign_request(
    method: str,
    url: str,
    headers: dict[str, str],
    body: bytes,
    credentials: AWSCredentials,
    region: str,
    service: str,
    timestamp: datetime | None = None,
) -> dict[str, str]:
    """Return a new header dict carrying the SigV4 Authorization header.

    `headers` and `credentials` are not modified. Region and both key
    fields must be non-empty; that is the caller's responsibility.
    """
    auth, request = _prepare(method, url, headers, body, credentials, region, service, timestamp)

    string_to_sign = auth.string_to_sign(request, auth.canonical_request(request))
    signature = auth.signature(string_to_sign, request)
    signed_headers = auth.signed_headers(auth.headers_to_sign(request))

    signed = dict(request.headers.items())
    signed["Authorization"] = (
        f"{ALGORITHM} Credential={auth.scope(request)}, "
        f"SignedHeaders={signed_headers}, Signature={signature}"
    )
    return signed
