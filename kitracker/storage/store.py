"""
store.py: Read and write the collector's JSON files on local disk or in an
S3-compatible bucket.

Paths starting with s3://bucket/key go through boto3; anything else is a
local file path. Credentials come from the kitracker_storage_options table
in Streamlit secrets.

Functions:
- read_json / write_json: load and save a JSON document.
- backup_file: move a (corrupt) file aside under a new suffix.
"""

import json
import os
import tempfile
from typing import Any, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from kitracker.config import get_setting
from kitracker.utils.log_util import app_logger

logger = app_logger(__name__)


class StorageError(Exception):
    """A storage target could not be read or written."""


def is_s3_path(path: str) -> bool:
    return path.startswith("s3://")


def split_s3_path(path: str) -> Tuple[str, str]:
    """Split s3://bucket/some/key into (bucket, key)."""
    _, _, rest = path.partition("s3://")
    bucket, _, key = rest.partition("/")
    if not bucket or not key:
        raise StorageError(f"Invalid S3 path: {path}")
    return bucket, key


def get_s3_client():
    options = get_setting("kitracker_storage_options", {}) or {}
    return boto3.client(
        "s3",
        endpoint_url=options.get("ENDPOINT_URL"),
        aws_access_key_id=options.get("ACCESS_KEY_ID"),
        aws_secret_access_key=options.get("SECRET_ACCESS_KEY"),
        region_name=options.get("REGION", "us-east-1"),
    )


def read_json(path: str) -> Any:
    """
    Load a JSON document.

    :param path: Local path or s3:// URL.
    :return: Parsed JSON.
    :raises FileNotFoundError: when the file or key does not exist.
    :raises ValueError: when the content is not valid JSON.
    :raises StorageError: on other storage failures.
    """
    if not is_s3_path(path):
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    bucket, key = split_s3_path(path)
    try:
        obj = get_s3_client().get_object(Bucket=bucket, Key=key)
    except ClientError as e:
        if e.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
            raise FileNotFoundError(path) from e
        raise StorageError(f"S3 read failed for {path}: {e}") from e
    except BotoCoreError as e:
        raise StorageError(f"S3 read failed for {path}: {e}") from e
    return json.loads(obj["Body"].read().decode("utf-8"))


def write_json(path: str, data: Any) -> None:
    """
    Save data as indented JSON.

    Local files are written to a temp file first and renamed into place so a
    reader never sees a half-written history.

    :param path: Local path or s3:// URL.
    :param data: JSON-serializable object.
    :raises StorageError: when the write fails.
    """
    payload = json.dumps(data, indent=2)

    if is_s3_path(path):
        bucket, key = split_s3_path(path)
        try:
            get_s3_client().put_object(
                Bucket=bucket,
                Key=key,
                Body=payload.encode("utf-8"),
                ContentType="application/json",
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"S3 write failed for {path}: {e}") from e
        logger.debug(f"Wrote {len(payload)} bytes to {path}")
        return

    directory = os.path.dirname(os.path.abspath(path))
    try:
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
        os.replace(tmp_path, path)
    except OSError as e:
        raise StorageError(f"Write failed for {path}: {e}") from e
    logger.debug(f"Wrote {len(payload)} bytes to {path}")


def backup_file(path: str, suffix: str) -> str:
    """
    Move path to path + suffix.

    :return: The backup path.
    :raises StorageError: when the move fails.
    """
    backup_path = f"{path}{suffix}"
    try:
        if is_s3_path(path):
            bucket, key = split_s3_path(path)
            _, backup_key = split_s3_path(backup_path)
            s3 = get_s3_client()
            s3.copy_object(
                Bucket=bucket, Key=backup_key, CopySource={"Bucket": bucket, "Key": key}
            )
            s3.delete_object(Bucket=bucket, Key=key)
        else:
            os.replace(path, backup_path)
    except (OSError, BotoCoreError, ClientError) as e:
        raise StorageError(f"Backup of {path} failed: {e}") from e
    logger.info(f"Backed up {path} to {backup_path}")
    return backup_path
