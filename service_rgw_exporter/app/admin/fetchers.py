"""
Typed accessors for admin API resources.

Fetchers only request and parse. They hold no state between calls and
never retry; retries belong to AdminClient.
"""

from typing import Any, Dict, List, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from rgw_shared.errors import ParseError
from ..ingestion.models import BucketRecord, QuotaRecord, QuotaScope, UserRecord
from .client import AdminClient

USERS_PATH = "/admin/metadata/user"
BUCKETS_PATH = "/admin/bucket"
USER_PATH = "/admin/user"

# Usage category holding regular object data in bucket stats.
MAIN_USAGE_CATEGORY = "rgw.main"

DocumentT = TypeVar("DocumentT", bound=BaseModel)


class UsageCategory(BaseModel):
    """One entry of a bucket's ``usage`` map."""
    model_config = ConfigDict(extra="ignore")

    size_kb: int = 0
    size_kb_actual: int = 0
    num_objects: int = 0


class BucketStatsDocument(BaseModel):
    """Response of ``GET /admin/bucket?bucket=<id>``."""
    model_config = ConfigDict(extra="ignore")

    owner: str
    num_shards: int = 0
    usage: Dict[str, UsageCategory] = Field(default_factory=dict)


class UserStatsDocument(BaseModel):
    """Response of ``GET /admin/user?stats=true&uid=<id>``."""
    model_config = ConfigDict(extra="ignore")

    stats: UsageCategory


class QuotaDocument(BaseModel):
    """Response of ``GET /admin/user?quota&quota-type=...&uid=<id>``."""
    model_config = ConfigDict(extra="ignore")

    enabled: bool
    max_size_kb: int
    max_objects: int


def _parse(model: Type[DocumentT], payload: Any, resource: str) -> DocumentT:
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise ParseError(
            f"Unexpected {resource} document",
            {"resource": resource, "errors": e.errors(include_url=False)}
        )


def _parse_identifiers(payload: Any, resource: str) -> List[str]:
    if not isinstance(payload, list) or not all(isinstance(item, str) for item in payload):
        raise ParseError(
            f"Expected a list of {resource} identifiers",
            {"resource": resource, "type": type(payload).__name__}
        )
    return list(payload)


class EntityFetchers:
    """Per-resource fetch operations on top of an AdminClient."""

    def __init__(self, client: AdminClient):
        self.client = client

    async def list_users(self) -> List[str]:
        payload = await self.client.get_json(USERS_PATH)
        return _parse_identifiers(payload, "user")

    async def list_buckets(self) -> List[str]:
        payload = await self.client.get_json(BUCKETS_PATH)
        return _parse_identifiers(payload, "bucket")

    async def get_bucket_stats(self, bucket: str) -> BucketRecord:
        payload = await self.client.get_json(BUCKETS_PATH, [("bucket", bucket)])
        document = _parse(BucketStatsDocument, payload, "bucket stats")
        main = document.usage.get(MAIN_USAGE_CATEGORY, UsageCategory())
        return BucketRecord(
            bucket=bucket,
            owner=document.owner,
            num_objects=main.num_objects,
            size_kb_actual=main.size_kb_actual,
            num_shards=document.num_shards,
        )

    async def get_user_stats(self, uid: str) -> UserRecord:
        payload = await self.client.get_json(USER_PATH, [("stats", "true"), ("uid", uid)])
        document = _parse(UserStatsDocument, payload, "user stats")
        return UserRecord(
            owner=uid,
            num_objects=document.stats.num_objects,
            size_kb_actual=document.stats.size_kb_actual,
        )

    async def get_user_quota(self, uid: str) -> QuotaRecord:
        return await self._get_quota(uid, QuotaScope.USER)

    async def get_bucket_quota(self, uid: str) -> QuotaRecord:
        """Owner's default bucket quota, looked up through the user endpoint."""
        return await self._get_quota(uid, QuotaScope.BUCKET)

    async def _get_quota(self, uid: str, scope: QuotaScope) -> QuotaRecord:
        payload = await self.client.get_json(
            USER_PATH,
            [("quota", None), ("quota-type", scope.value), ("uid", uid)]
        )
        document = _parse(QuotaDocument, payload, f"{scope.value} quota")
        return QuotaRecord(
            owner=uid,
            scope=scope,
            enabled=document.enabled,
            max_size_kb=document.max_size_kb,
            max_objects=document.max_objects,
        )
