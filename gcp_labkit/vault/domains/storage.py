"""Cloud Storage bucket detection and upload."""
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import storage

from gcp_labkit.common.domains.errors import ResourceCreationError

logger = logging.getLogger(__name__)


def bucket_uri(name: str) -> str:
    return f"gs://{name}/"


def split_uri(uri: str) -> Tuple[str, str]:
    """Split ``gs://bucket/prefix`` into (bucket, prefix)."""
    if not uri.startswith("gs://"):
        raise ValueError(f"Not a gs:// URI: {uri}")
    bucket, _, prefix = uri[len("gs://"):].partition("/")
    return bucket, prefix


def select_bucket(project_id: str, uris: Iterable[str]) -> Optional[str]:
    """
    Pick the upload target from a bucket listing.

    A bucket whose name contains the project id wins; otherwise the first
    listed bucket; None for an empty listing.
    """
    uris = list(uris)
    for uri in uris:
        if project_id in split_uri(uri)[0]:
            return uri
    return uris[0] if uris else None


class StorageClient:
    """Wrapper around google.cloud.storage.Client."""

    def __init__(self, project_id: str):
        self.project_id = project_id
        self._client = None

    @property
    def client(self) -> storage.Client:
        """Lazy-initialize client."""
        if self._client is None:
            self._client = storage.Client(project=self.project_id)
        return self._client

    def list_bucket_uris(self) -> List[str]:
        return [bucket_uri(b.name) for b in self.client.list_buckets()]

    def upload(self, local_path: str, target_uri: str) -> str:
        """
        Copy ``local_path`` into ``target_uri`` (a bucket or bucket/prefix).

        Returns:
            The URI of the uploaded object

        Raises:
            ResourceCreationError: If the upload fails
        """
        bucket_name, prefix = split_uri(target_uri)
        blob_name = prefix + Path(local_path).name if (not prefix or prefix.endswith("/")) else prefix
        try:
            self.client.bucket(bucket_name).blob(blob_name).upload_from_filename(local_path)
        except (google_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError, OSError) as e:
            raise ResourceCreationError("storage object", f"gs://{bucket_name}/{blob_name}", e) from e
        return f"gs://{bucket_name}/{blob_name}"


def detect_bucket(project_id: str, client: Optional[StorageClient] = None) -> Optional[str]:
    """
    Find a bucket to upload to, or None.

    Listing failures degrade to None with a warning; the upload step then
    becomes a manual instruction.
    """
    client = client or StorageClient(project_id)
    try:
        uris = client.list_bucket_uris()
    except (google_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as e:
        logger.warning(f"Could not list buckets in {project_id}: {e}")
        return None
    return select_bucket(project_id, uris)
