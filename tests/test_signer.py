"""Tests for dictation_ai/aws/signer.py: SigV4 signing."""

import hashlib
import re
from datetime import datetime, timedelta, timezone

import pytest

from dictation_ai.aws.profiles import AWSCredentials
from dictation_ai.aws.signer import canonical_request, sign_request

URL = "https://bedrock-runtime.us-east-1.amazonaws.com/model/anthropic.claude%3A0/converse"
BODY = b'{"messages": []}'
WHEN = datetime(2024, 5, 1, 12, 30, 45, tzinfo=timezone.utc)
EMPTY_SHA256 = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


@pytest.fixture
def credentials() -> AWSCredentials:
    return AWSCredentials(access_key_id="AKIDEXAMPLE", secret_access_key="wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY")


def _sign(credentials, **overrides):
    kwargs = dict(
        method="POST",
        url=URL,
        headers={"Content-Type": "application/json"},
        body=BODY,
        credentials=credentials,
        region="us-east-1",
        service="bedrock",
        timestamp=WHEN,
    )
    kwargs.update(overrides)
    return sign_request(**kwargs)


def _signature(headers: dict) -> str:
    return re.search(r"Signature=([0-9a-f]+)$", headers["Authorization"]).group(1)


class TestCanonicalRequest:

    def test_layout(self, credentials):
        text = canonical_request(
            "get", "https://example.amazonaws.com/a%3Ab?b=2&a=1", {}, b"",
            credentials, "us-east-1", "bedrock", timestamp=WHEN,
        )
        assert text == "\n".join([
            "GET",
            "/a%253Ab",
            "a=1&b=2",
            "host:example.amazonaws.com",
            f"x-amz-content-sha256:{EMPTY_SHA256}",
            "x-amz-date:20240501T123045Z",
            "",
            "host;x-amz-content-sha256;x-amz-date",
            EMPTY_SHA256,
        ])

    def test_header_values_trimmed_and_sorted(self, credentials):
        text = canonical_request(
            "POST", URL, {"X-Custom": "  x   y  ", "Content-Type": "application/json"}, BODY,
            credentials, "us-east-1", "bedrock", timestamp=WHEN,
        )
        lines = text.split("\n")
        assert lines[3] == "content-type:application/json"
        assert "x-custom:x y" in lines
        assert lines[-1] == hashlib.sha256(BODY).hexdigest()


class TestSignRequest:

    def test_deterministic(self, credentials):
        assert _sign(credentials) == _sign(credentials)

    def test_authorization_format(self, credentials):
        headers = _sign(credentials)
        auth = headers["Authorization"]
        assert auth.startswith("AWS4-HMAC-SHA256 Credential=AKIDEXAMPLE/20240501/us-east-1/bedrock/aws4_request, ")
        assert "SignedHeaders=content-type;host;x-amz-content-sha256;x-amz-date, " in auth
        assert re.fullmatch(r"[0-9a-f]{64}", _signature(headers))

    def test_adds_amz_headers(self, credentials):
        headers = _sign(credentials)
        assert headers["x-amz-date"] == "20240501T123045Z"
        assert headers["host"] == "bedrock-runtime.us-east-1.amazonaws.com"
        assert headers["x-amz-content-sha256"] == hashlib.sha256(BODY).hexdigest()

    @pytest.mark.parametrize("override", [
        {"body": b'{"messages": [1]}'},
        {"region": "us-west-2"},
        {"service": "bedrock-runtime"},
        {"timestamp": datetime(2024, 5, 1, 12, 30, 46, tzinfo=timezone.utc)},
        {"method": "PUT"},
        {"url": URL + "?x=1"},
        {"headers": {"Content-Type": "text/plain"}},
    ])
    def test_any_input_change_changes_signature(self, credentials, override):
        assert _signature(_sign(credentials, **override)) != _signature(_sign(credentials))

    def test_secret_change_changes_signature(self, credentials):
        other = AWSCredentials(access_key_id="AKIDEXAMPLE", secret_access_key="different")
        assert _signature(_sign(other)) != _signature(_sign(credentials))

    def test_session_token_is_signed(self):
        creds = AWSCredentials(access_key_id="AKID", secret_access_key="secret", session_token="token-1")
        headers = _sign(creds)
        assert headers["x-amz-security-token"] == "token-1"
        assert "x-amz-security-token" in headers["Authorization"]

        changed = AWSCredentials(access_key_id="AKID", secret_access_key="secret", session_token="token-2")
        assert _signature(_sign(changed)) != _signature(headers)

    def test_no_token_header_without_token(self, credentials):
        assert "x-amz-security-token" not in _sign(credentials)

    def test_inputs_not_mutated(self, credentials):
        headers = {"Content-Type": "application/json"}
        _sign(credentials, headers=headers)
        assert headers == {"Content-Type": "application/json"}

    def test_existing_authorization_replaced(self, credentials):
        headers = _sign(credentials, headers={"Content-Type": "application/json", "Authorization": "Bearer x"})
        assert headers["Authorization"].startswith("AWS4-HMAC-SHA256")
        assert headers == _sign(credentials)

    def test_timestamp_normalized_to_utc(self, credentials):
        shifted = WHEN.astimezone(timezone(timedelta(hours=2)))
        assert _sign(credentials, timestamp=shifted) == _sign(credentials)
