"""
S3-compatible object store access (MinIO or AWS) for uploaded tenant files.

MinIO speaks the S3 API so boto3 is used with an explicit endpoint and
path-style addressing.
"""
import re
from typing import Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .. import config
from ..errors import ObjectStoreError

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


def endpoint_url(endpoint: str, use_ssl: bool) -> str:
    """Normalise host[:port] or a full URL to a URL whose scheme follows use_ssl"""
    host = _SCHEME_RE.sub("", endpoint.strip()).rstrip("/")
    return f"{'https' if use_ssl else 'http'}://{host}"


class ObjectStore:

    def __init__(
        self,
        bucket: str,
        endpoint: str,
        access_key: str,
        secret_key: str,
        region: Optional[str] = "us-east-1",
        use_ssl: bool = False,
        verify_tls: bool = True,
    ):
        self.bucket = bucket
        self.client = boto3.client(
            "s3",
            region_name=region,
            endpoint_url=endpoint_url(endpoint, use_ssl),
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            verify=verify_tls,
            config=BotoConfig(s3={"addressing_style": "path"}),
        )

    @classmethod
    def from_config(cls) -> Optional["ObjectStore"]:
        s3 = config.s3_settings()
        if s3 is None:
            return None
        return cls(
            bucket=s3.bucket,
            endpoint=s3.endpoint,
            access_key=s3.access_key,
            secret_key=s3.secret_key,
            region=s3.region,
            use_ssl=config.S3_USE_SSL,
            verify_tls=not config.S3_SKIP_TLS_VERIFY,
        )

    def open(self, key: str):
        """Return a readable binary stream for the object (caller closes it)"""
        try:
            obj = self.client.get_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise ObjectStoreError(f"get object {key}: {e}", cause=e)
        return obj["Body"]
