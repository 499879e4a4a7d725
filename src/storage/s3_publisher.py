# src/storage/s3_publisher.py - v2
"""S3-compatible publisher (DEPLOY_BACKEND=s3).

Supports AWS S3, MinIO and other S3-compatible storage. Each environment
target names a bucket; its prefix is the key prefix and its credentials
handle is used as the boto3 profile name. boto3 calls are blocking and
run in worker threads, client lookup included, so a missing profile
surfaces as a PublishError like any other storage failure.
"""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from pathlib import Path
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError

from polyship.core.errors import PublishError
from polyship.deploy.models import EnvironmentTarget, ReleaseMarker
from polyship.storage.base_publisher import MARKER_NAME, BasePublisher
from polyship.tasks.files import list_files

logger = logging.getLogger(__name__)

_DELETE_BATCH = 1000


class S3Publisher(BasePublisher):
    """Publish to S3 buckets.

    Args:
        region: Default AWS region when a target has none.
        endpoint_url: Custom endpoint for MinIO/compatible storage.
        client: Pre-built client used for every target (tests, custom sessions).
    """

    def __init__(
        self,
        region: str | None = None,
        endpoint_url: str | None = None,
        client: Any = None,
    ) -> None:
        self._region = region or None
        self._endpoint_url = endpoint_url or None
        self._client = client
        self._clients: dict[tuple[str | None, str | None], Any] = {}

    def _client_for(self, target: EnvironmentTarget) -> Any:
        if self._client is not None:
            return self._client
        key = (target.credentials, target.region or self._region)
        if key not in self._clients:
            import boto3

            session = boto3.session.Session(profile_name=target.credentials)
            kwargs: dict[str, Any] = {}
            if key[1]:
                kwargs["region_name"] = key[1]
            if self._endpoint_url:
                kwargs["endpoint_url"] = self._endpoint_url
            self._clients[key] = session.client("s3", **kwargs)
        return self._clients[key]

    @staticmethod
    def _prefix(target: EnvironmentTarget) -> str:
        prefix = target.prefix.strip("/")
        return f"{prefix}/" if prefix else ""

    def describe(self, target: EnvironmentTarget) -> str:
        return f"s3://{target.target}/{self._prefix(target)}"

    async def publish(self, artifact_dir: Path, target: EnvironmentTarget) -> list[str]:
        artifact_dir = Path(artifact_dir)
        if not artifact_dir.is_dir():
            raise PublishError(f"Nothing to publish: {artifact_dir} does not exist")
        return await self._guard(
            f"publish to {self.describe(target)}",
            self._publish_sync,
            artifact_dir,
            target,
        )

    async def copy_release(
        self, source: EnvironmentTarget, target: EnvironmentTarget
    ) -> list[str]:
        return await self._guard(
            f"copy {self.describe(source)} to {self.describe(target)}",
            self._copy_sync,
            source,
            target,
        )

    async def read_marker(self, target: EnvironmentTarget) -> ReleaseMarker | None:
        return await self._guard(
            f"read marker of {self.describe(target)}", self._read_marker_sync, target
        )

    async def write_marker(self, target: EnvironmentTarget, marker: ReleaseMarker) -> None:
        await self._guard(
            f"write marker of {self.describe(target)}",
            self._write_marker_sync,
            target,
            marker,
        )

    async def _guard(self, action: str, func: Any, *args: Any, **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except (BotoCoreError, ClientError, OSError) as exc:
            raise PublishError(f"Cannot {action}: {exc}") from exc

    # --- Blocking helpers ---

    def _publish_sync(self, artifact_dir: Path, target: EnvironmentTarget) -> list[str]:
        client = self._client_for(target)
        prefix = self._prefix(target)
        files = list_files(artifact_dir, exclude=(MARKER_NAME,))
        existing = self._list_keys(client, target.target, prefix)

        for rel in files:
            content_type, _ = mimetypes.guess_type(rel)
            client.put_object(
                Bucket=target.target,
                Key=prefix + rel,
                Body=(artifact_dir / rel).read_bytes(),
                ContentType=content_type or "application/octet-stream",
            )
        self._delete_stale(client, target.target, prefix, existing, files)
        logger.info("Uploaded %d files to %s", len(files), self.describe(target))
        return files

    def _copy_sync(self, source: EnvironmentTarget, target: EnvironmentTarget) -> list[str]:
        src_client = self._client_for(source)
        dst_client = self._client_for(target)
        src_prefix = self._prefix(source)
        dst_prefix = self._prefix(target)

        files = sorted(
            rel
            for rel in self._list_keys(src_client, source.target, src_prefix)
            if rel != MARKER_NAME
        )
        existing = self._list_keys(dst_client, target.target, dst_prefix)
        for rel in files:
            dst_client.copy_object(
                Bucket=target.target,
                Key=dst_prefix + rel,
                CopySource={"Bucket": source.target, "Key": src_prefix + rel},
            )
        self._delete_stale(dst_client, target.target, dst_prefix, existing, files)
        logger.info(
            "Copied %d objects from %s to %s",
            len(files),
            self.describe(source),
            self.describe(target),
        )
        return files

    def _read_marker_sync(self, target: EnvironmentTarget) -> ReleaseMarker | None:
        client = self._client_for(target)
        try:
            response = client.get_object(
                Bucket=target.target, Key=self._prefix(target) + MARKER_NAME
            )
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "")
            if code in ("NoSuchKey", "404", "NotFound"):
                return None
            raise
        try:
            return ReleaseMarker.model_validate_json(response["Body"].read())
        except ValidationError as exc:
            raise PublishError(
                f"Unreadable release marker in {self.describe(target)}: {exc}"
            ) from exc

    def _write_marker_sync(self, target: EnvironmentTarget, marker: ReleaseMarker) -> None:
        self._client_for(target).put_object(
            Bucket=target.target,
            Key=self._prefix(target) + MARKER_NAME,
            Body=marker.model_dump_json(indent=2).encode("utf-8"),
            ContentType="application/json",
        )

    @staticmethod
    def _list_keys(client: Any, bucket: str, prefix: str) -> set[str]:
        """Keys under prefix, relative to it."""
        keys: set[str] = set()
        kwargs: dict[str, Any] = {"Bucket": bucket, "Prefix": prefix}
        while True:
            response = client.list_objects_v2(**kwargs)
            for obj in response.get("Contents", []):
                rel = obj["Key"][len(prefix):]
                if rel:
                    keys.add(rel)
            if not response.get("IsTruncated"):
                return keys
            kwargs["ContinuationToken"] = response["NextContinuationToken"]

    @staticmethod
    def _delete_stale(
        client: Any, bucket: str, prefix: str, existing: set[str], current: list[str]
    ) -> None:
        stale = sorted(existing - set(current) - {MARKER_NAME})
        for i in range(0, len(stale), _DELETE_BATCH):
            batch = stale[i : i + _DELETE_BATCH]
            client.delete_objects(
                Bucket=bucket,
                Delete={"Objects": [{"Key": prefix + rel} for rel in batch]},
            )
        if stale:
            logger.info("Deleted %d stale objects from s3://%s/%s", len(stale), bucket, prefix)
