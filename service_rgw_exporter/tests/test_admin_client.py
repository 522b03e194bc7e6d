"""
Unit tests for the admin API client.
"""

import asyncio

import httpx
import pytest

from rgw_shared.errors import AuthError, ConfigurationError, ParseError, TransportError, UpstreamError
from rgw_shared.retry import RetryConfig, _calculate_delay
from rgw_shared.test_helpers import TEST_CREDENTIALS, TEST_ENDPOINT
from service_rgw_exporter.app.admin.client import AdminClient, load_credentials


def make_client(handler, timeout: float = 2.0, max_attempts: int = 1) -> AdminClient:
    return AdminClient(
        TEST_ENDPOINT,
        TEST_CREDENTIALS,
        timeout=timeout,
        retry_config=RetryConfig(max_attempts=max_attempts, base_delay=0, jitter=False),
        transport=httpx.MockTransport(handler)
    )


class TestAdminClient:
    """Test cases for AdminClient."""

    def test_build_url_encodes_values(self):
        """Test query building with bare keys and escaped identifiers."""
        client = make_client(lambda request: httpx.Response(200, json=[]))

        url = client.build_url("/admin/user", [("quota", None), ("quota-type", "user"), ("uid", "tenant$bob")])

        assert url == f"{TEST_ENDPOINT}/admin/user?quota&quota-type=user&uid=tenant%24bob"

    def test_build_url_without_params(self):
        """Test URL building for list endpoints."""
        client = make_client(lambda request: httpx.Response(200, json=[]))

        assert client.build_url("/admin/bucket") == f"{TEST_ENDPOINT}/admin/bucket"

    @pytest.mark.asyncio
    async def test_requests_are_signed(self):
        """Test that requests carry an S3 SigV4 signature."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=["alice"])

        client = make_client(handler)
        result = await client.get_json("/admin/metadata/user")

        assert result == ["alice"]
        headers = seen[0].headers
        assert headers["authorization"].startswith("AWS4-HMAC-SHA256 Credential=test-access-key/")
        assert "/us-east-1/s3/aws4_request" in headers["authorization"]
        assert "x-amz-date" in headers
        assert "x-amz-content-sha256" in headers
        await client.close()

    @pytest.mark.asyncio
    async def test_sent_query_matches_built_url(self):
        """Test that the query string reaches the server unchanged."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"enabled": False, "max_size_kb": 0, "max_objects": -1})

        client = make_client(handler)
        await client.get_json("/admin/user", [("quota", None), ("quota-type", "bucket"), ("uid", "alice")])

        assert seen[0].url.path == "/admin/user"
        assert seen[0].url.params["quota-type"] == "bucket"
        assert seen[0].url.params["uid"] == "alice"
        assert "quota" in seen[0].url.params
        await client.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [401, 403])
    async def test_auth_failure(self, status_code):
        """Test that rejected credentials raise AuthError without retrying."""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(status_code, json={"Code": "AccessDenied"})

        client = make_client(handler, max_attempts=3)

        with pytest.raises(AuthError) as exc_info:
            await client.get_json("/admin/bucket")

        assert exc_info.value.details["status_code"] == status_code
        assert len(calls) == 1
        await client.close()

    @pytest.mark.asyncio
    async def test_error_status(self):
        """Test that other non-2xx statuses raise UpstreamError."""
        client = make_client(lambda request: httpx.Response(404, json={"Code": "NoSuchBucket"}))

        with pytest.raises(UpstreamError) as exc_info:
            await client.get_json("/admin/bucket", [("bucket", "missing")])

        assert exc_info.value.code == "UPSTREAM_ERROR"
        assert exc_info.value.details["status_code"] == 404
        await client.close()

    @pytest.mark.asyncio
    async def test_malformed_json(self):
        """Test that an undecodable body raises ParseError."""
        client = make_client(lambda request: httpx.Response(200, content=b"<html>gateway</html>"))

        with pytest.raises(ParseError):
            await client.get_json("/admin/bucket")

        await client.close()

    @pytest.mark.asyncio
    async def test_deeply_nested_json(self):
        """Test that a body nested past the decoder's recursion limit raises ParseError."""
        client = make_client(lambda request: httpx.Response(200, content=b"[" * 200000))

        with pytest.raises(ParseError) as exc_info:
            await client.get_json("/admin/bucket", [("bucket", "b1")])

        assert exc_info.value.details["url"].endswith("/admin/bucket?bucket=b1")
        await client.close()

    @pytest.mark.asyncio
    async def test_connection_error(self):
        """Test that connection failures raise TransportError."""
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)

        with pytest.raises(TransportError):
            await client.get_json("/admin/bucket")

        await client.close()

    @pytest.mark.asyncio
    async def test_transport_error_is_retried(self):
        """Test that a transient transport failure is retried."""
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ReadError("connection reset", request=request)
            return httpx.Response(200, json=["b1"])

        client = make_client(handler, max_attempts=2)

        assert await client.get_json("/admin/bucket") == ["b1"]
        assert len(calls) == 2
        await client.close()

    @pytest.mark.asyncio
    async def test_retries_exhausted(self):
        """Test that the last TransportError propagates after all attempts."""
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler, max_attempts=3)

        with pytest.raises(TransportError):
            await client.get_json("/admin/bucket")

        assert len(calls) == 3
        await client.close()

    @pytest.mark.asyncio
    async def test_hung_request_times_out(self):
        """Test that a request that never answers fails within the timeout."""
        async def handler(request):
            await asyncio.sleep(10)
            return httpx.Response(200, json=[])

        client = make_client(handler, timeout=0.05)

        with pytest.raises(TransportError) as exc_info:
            await asyncio.wait_for(client.get_json("/admin/bucket"), timeout=2)

        assert exc_info.value.details["timeout"] == 0.05
        await client.close()


class TestLoadCredentials:
    """Test cases for environment credentials."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for name in ("AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY", "AWS_SESSION_TOKEN",
                     "AWS_SECURITY_TOKEN", "AWS_CREDENTIAL_EXPIRATION"):
            monkeypatch.delenv(name, raising=False)

    def test_credentials_from_environment(self, monkeypatch):
        """Test loading credentials from AWS_* variables."""
        monkeypatch.setenv("AWS_ACCESS_KEY_ID", "AKEXAMPLE")
        monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "secret")

        credentials = load_credentials()

        assert credentials.access_key == "AKEXAMPLE"
        assert credentials.secret_key == "secret"

    def test_missing_credentials(self):
        """Test that missing credentials are a configuration error."""
        with pytest.raises(ConfigurationError):
            load_credentials()


class TestRetryDelay:
    """Test cases for the backoff between admin API attempts."""

    def test_delay_doubles_up_to_cap(self):
        """Test exponential growth capped at max_delay."""
        config = RetryConfig(base_delay=0.5, max_delay=3.0, jitter=False)

        delays = [_calculate_delay(attempt, config) for attempt in range(1, 6)]

        assert delays == [0.5, 1.0, 2.0, 3.0, 3.0]

    def test_jitter_stays_within_ten_percent(self):
        """Test that jitter never moves the delay more than 10%."""
        config = RetryConfig(base_delay=1.0, jitter=True)

        for _ in range(50):
            assert 0.9 <= _calculate_delay(1, config) <= 1.1
