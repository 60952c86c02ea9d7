from datetime import datetime
from typing import Any, Iterator, Optional, Protocol
from botocore.exceptions import BotoCoreError, ClientError
from botocore.client import Config
import boto3

from .errors import ListError, RetrievalError, UpdateError
from .retention import RetentionRecord


class StorageClient(Protocol):
    def list_objects(self, bucket: str, prefix: Optional[str] = None) -> Iterator[str]:
        ...

    def get_retention(self, bucket: str, key: str) -> RetentionRecord:
        ...

    def put_retention(
        self, bucket: str, key: str, mode: str, retain_until: datetime
    ) -> None:
        ...


def create_s3_client(
    endpoint: Optional[str],
    region: str,
    access_key: Optional[str] = None,
    secret_key: Optional[str] = None,
    max_pool_connections: int = 50,
):
    credentials = {}
    if access_key and secret_key:
        credentials = {
            "aws_access_key_id": access_key,
            "aws_secret_access_key": secret_key,
        }
    return boto3.client(
        "s3",
        endpoint_url=endpoint,
        config=Config(
            signature_version="s3v4",
            max_pool_connections=max_pool_connections,
            request_checksum_calculation="when_required",
            response_checksum_validation="when_required",
        ),
        region_name=region,
        **credentials,
    )


class S3StorageClient:
    """Object-lock operations on a boto3 S3 client.

    SDK errors are re-raised as the matching ``RenewalError`` subclass with
    the original exception chained.
    """

    def __init__(self, s3: Any):
        self.s3 = s3

    def list_objects(self, bucket: str, prefix: Optional[str] = None) -> Iterator[str]:
        params = {"Bucket": bucket}
        if prefix:
            params["Prefix"] = prefix
        paginator = self.s3.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(**params):
                for obj in page.get("Contents", []) or []:
                    yield obj["Key"]
        except (ClientError, BotoCoreError) as err:
            raise ListError(bucket, err) from err

    def get_retention(self, bucket: str, key: str) -> RetentionRecord:
        try:
            resp = self.s3.get_object_retention(Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as err:
            raise RetrievalError(bucket, key, err) from err
        retention = resp.get("Retention") or {}
        if "RetainUntilDate" not in retention:
            raise RetrievalError(bucket, key, "no retention configured")
        return RetentionRecord(
            mode=retention.get("Mode", ""),
            retain_until=retention["RetainUntilDate"],
        )

    def put_retention(
        self, bucket: str, key: str, mode: str, retain_until: datetime
    ) -> None:
        try:
            self.s3.put_object_retention(
                Bucket=bucket,
                Key=key,
                Retention={"Mode": mode, "RetainUntilDate": retain_until},
            )
        except (ClientError, BotoCoreError) as err:
            raise UpdateError(bucket, key, err) from err
