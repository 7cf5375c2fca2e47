"""
Google Drive client.

Authenticates with a service account limited to the `drive.file` scope
(the account can only see files it created) and creates one Drive file per
uploaded photo inside the configured parent folder.

The Google API client is synchronous and its httplib2 transport is not
thread-safe, so every upload runs in a worker thread with its own
authorized transport. Only the credentials are shared.
"""

import asyncio
import io
import logging

import httplib2
from google.oauth2 import service_account
from google_auth_httplib2 import AuthorizedHttp
from google_auth_httplib2 import Request as GoogleAuthRequest
from googleapiclient.discovery import build
from googleapiclient.http import MediaIoBaseUpload

from ...core.uploads.models import UploadConfig, UploadResult
from .client import StorageAuthError, StorageError

logger = logging.getLogger(__name__)

DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive.file"]
TOKEN_URI = "https://oauth2.googleapis.com/token"
RESPONSE_FIELDS = "id, name, webViewLink"

CLIENT_EMAIL_SETTING = "GOOGLE_CLIENT_EMAIL"
PRIVATE_KEY_SETTING = "GOOGLE_PRIVATE_KEY"
FOLDER_ID_SETTING = "GOOGLE_DRIVE_FOLDER_ID"


class DriveStorageClient:
    """Creates files in Google Drive on behalf of a service account."""

    def __init__(self, credentials, service=None) -> None:
        self._credentials = credentials
        self._service = service or build(
            "drive",
            "v3",
            credentials=credentials,
            cache_discovery=False,
        )

    async def create_object(
        self,
        name: str,
        parent_id: str,
        media_type: str,
        content: bytes,
    ) -> UploadResult:
        """Upload `content` as a new file named `name` in folder `parent_id`."""
        try:
            response = await asyncio.to_thread(
                self._create_file, name, parent_id, media_type, content
            )
        except Exception as e:
            logger.error(
                "Failed to create Drive file",
                extra={"object_name": name, "folder_id": parent_id, "error": str(e)}
            )
            raise StorageError(f"Drive upload failed: {e}") from e

        logger.debug(
            "Created Drive file",
            extra={"object_id": response.get("id"), "object_name": name}
        )

        return UploadResult(
            id=response["id"],
            name=response.get("name", name),
            web_view_link=response.get("webViewLink"),
        )

    def _create_file(self, name: str, parent_id: str, media_type: str, content: bytes) -> dict:
        media = MediaIoBaseUpload(io.BytesIO(content), mimetype=media_type, resumable=False)
        request = self._service.files().create(
            body={"name": name, "parents": [parent_id]},
            media_body=media,
            fields=RESPONSE_FIELDS,
        )
        # Per-call transport; httplib2.Http must not be shared across threads
        http = AuthorizedHttp(self._credentials, http=httplib2.Http())
        return request.execute(http=http)


class DriveConnector:
    """Authenticates a service account and returns a Drive client."""

    async def connect(self, config: UploadConfig) -> DriveStorageClient:
        """
        Build service-account credentials and fetch an access token.

        The token is fetched eagerly so that a bad key or a disabled
        account fails here, as an authentication problem, rather than on
        the first file upload.
        """
        info = {
            "type": "service_account",
            "client_email": config.credentials[CLIENT_EMAIL_SETTING],
            "private_key": config.credentials[PRIVATE_KEY_SETTING],
            "token_uri": TOKEN_URI,
        }

        try:
            credentials = service_account.Credentials.from_service_account_info(
                info, scopes=DRIVE_SCOPES
            )
            await asyncio.to_thread(credentials.refresh, GoogleAuthRequest(httplib2.Http()))
            client = DriveStorageClient(credentials)
        except Exception as e:
            raise StorageAuthError(f"Google Drive authentication failed: {e}") from e

        logger.info(
            "Authenticated with Google Drive",
            extra={"client_email": info["client_email"]}
        )

        return client
