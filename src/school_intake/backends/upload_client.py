import logging
from dataclasses import dataclass
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


@dataclass
class UploadFile:
    field_name: str
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


class UploadRelayClient:
    """Forwards uploaded files to the file-storage service, one request per file"""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def upload_files(self, submission_id: int, files: list[UploadFile]) -> dict:
        """
        Upload files for a submission.

        Individual failures are collected and logged, never raised.

        Returns:
            {"success": bool, "uploaded": [filenames], "failed": [filenames]}
        """
        uploaded: list[str] = []
        failed: list[str] = []

        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            for upload in files:
                try:
                    response = client.post(
                        self.base_url,
                        data={"submission_id": str(submission_id), "field": upload.field_name},
                        files={
                            "file": (upload.filename, upload.content, upload.content_type)
                        },
                    )
                    response.raise_for_status()
                    uploaded.append(upload.filename)
                except httpx.HTTPError as e:
                    logger.warning(
                        f"Upload of {upload.filename} for submission {submission_id} failed: {e}"
                    )
                    failed.append(upload.filename)

        return {"success": not failed, "uploaded": uploaded, "failed": failed}
