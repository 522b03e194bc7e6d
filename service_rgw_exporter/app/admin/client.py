"""
Signed HTTP client for the radosgw admin API.
"""

import asyncio
from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import quote

import httpx
from botocore.auth import S3SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials, EnvProvider

from rgw_shared.errors import AuthError, ConfigurationError, ParseError, TransportError, UpstreamError
from rgw_shared.logging import get_logger
from rgw_shared.retry import RetryConfig, call_with_retry

QueryParams = Sequence[Tuple[str, Optional[str]]]


def load_credentials() -> Credentials:
    """Read signing credentials from AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY."""
    credentials = EnvProvider().load()
    if credentials is None:
        raise ConfigurationError(
            "Admin API credentials not found in environment",
            {"expected": ["AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY"]}
        )
    return credentials


class AdminClient:
    """Issues signed GET requests against ``<endpoint>/admin/...``.

    Each request is bounded by ``timeout`` seconds end to end. Transport
    failures are retried according to ``retry_config``; auth, status and
    payload failures are raised immediately.
    """

    def __init__(
        self,
        endpoint: str,
        credentials: Credentials,
        region: str = "us-east-1",
        timeout: float = 30.0,
        retry_config: Optional[RetryConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.endpoint = endpoint.rstrip('/')
        self.credentials = credentials
        self.region = region
        self.timeout = timeout
        self.retry_config = retry_config or RetryConfig()
        self.logger = get_logger("rgw_exporter.admin.client")
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    def build_url(self, path: str, params: Optional[QueryParams] = None) -> str:
        """Build the request URL, encoding values so the signed query matches the sent one."""
        url = f"{self.endpoint}{path}"
        if not params:
            return url

        parts: List[str] = []
        for key, value in params:
            if value is None:
                parts.append(key)
            else:
                parts.append(f"{key}={quote(str(value), safe='-_.~')}")
        return f"{url}?{'&'.join(parts)}"

    def _sign(self, url: str) -> Dict[str, str]:
        request = AWSRequest(method="GET", url=url)
        S3SigV4Auth(self.credentials, "s3", self.region).add_auth(request)
        return dict(request.headers.items())

    async def get_json(self, path: str, params: Optional[QueryParams] = None) -> Any:
        """GET an admin resource and return the decoded JSON document."""
        url = self.build_url(path, params)
        return await call_with_retry(
            self._request,
            url,
            exceptions=(TransportError,),
            config=self.retry_config
        )

    async def _request(self, url: str) -> Any:
        try:
            response = await asyncio.wait_for(self._send(url), timeout=self.timeout)
        except asyncio.TimeoutError:
            self.logger.warning("Admin API timeout", url=url, timeout=self.timeout)
            raise TransportError("Admin API request timed out", {"url": url, "timeout": self.timeout})

        if response.status_code in (401, 403):
            self.logger.warning("Admin API rejected request", url=url, status_code=response.status_code)
            raise AuthError(details={"url": url, "status_code": response.status_code})

        if not response.is_success:
            self.logger.warning(
                "Admin API returned error status",
                url=url,
                status_code=response.status_code,
                response=response.text[:200]
            )
            raise UpstreamError(
                f"Admin API returned HTTP {response.status_code}",
                {"url": url, "status_code": response.status_code}
            )

        try:
            return response.json()
        # Nesting deeper than the decoder's recursion limit raises RecursionError
        except (ValueError, RecursionError) as e:
            raise ParseError("Admin API returned invalid JSON", {"url": url, "error": str(e)})

    async def _send(self, url: str) -> httpx.Response:
        headers = self._sign(url)
        try:
            return await self._client.get(url, headers=headers)
        except httpx.TimeoutException as e:
            self.logger.warning("Admin API timeout", url=url, error=str(e))
            raise TransportError("Admin API request timed out", {"url": url})
        except httpx.RequestError as e:
            self.logger.warning("Admin API request error", url=url, error=str(e))
            raise TransportError("Admin API unreachable", {"url": url, "error": str(e)})

    async def close(self):
        """Close the underlying connection pool."""
        await self._client.aclose()
