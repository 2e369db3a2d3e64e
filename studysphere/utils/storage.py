"""
StudySphere — Google Cloud Storage helpers for whiteboard snapshots.
"""

import base64
import binascii
import hashlib

import structlog
from google.cloud import storage as gcs_storage

from studysphere.config import get_settings

logger = structlog.get_logger("studysphere.storage")

_PNG_DATA_URL_PREFIX = "data:image/png;base64,"


def get_storage_client():
    return gcs_storage.Client(project=get_settings().GCP_PROJECT_ID)


def get_bucket():
    client = get_storage_client()
    return client.bucket(get_settings().GCS_BUCKET_NAME)


def upload_file(path: str, file_bytes: bytes, content_type: str = "application/octet-stream") -> str:
    """Upload file to GCS bucket. Returns the GCS URI."""
    bucket = get_bucket()
    blob = bucket.blob(path)
    blob.metadata = {"sha256": hashlib.sha256(file_bytes).hexdigest()}
    blob.upload_from_string(file_bytes, content_type=content_type)
    return f"gs://{bucket.name}/{path}"


def decode_png_data_url(data_url: str) -> bytes:
    """Decode a ``data:image/png;base64,...`` canvas export.

    Raises ``ValueError`` for any other media type or invalid base64.
    """
    if not data_url.startswith(_PNG_DATA_URL_PREFIX):
        raise ValueError("Whiteboard snapshot must be a base64 PNG data URL")
    try:
        return base64.b64decode(data_url[len(_PNG_DATA_URL_PREFIX):], validate=True)
    except binascii.Error as exc:
        raise ValueError("Whiteboard snapshot is not valid base64") from exc


def upload_whiteboard_snapshot(group_id: int, data_url: str) -> str:
    """Store a group's whiteboard PNG under the whiteboard prefix.

    The object name is content-addressed, so re-uploading an identical canvas
    overwrites the same blob.
    """
    png_bytes = decode_png_data_url(data_url)
    digest = hashlib.sha256(png_bytes).hexdigest()[:16]
    path = f"{get_settings().GCS_WHITEBOARD_PREFIX}{group_id}/{digest}.png"
    uri = upload_file(path, png_bytes, content_type="image/png")
    logger.info("whiteboard_uploaded", group_id=group_id, uri=uri, size=len(png_bytes))
    return uri
