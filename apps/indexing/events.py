"""
WebSocket event schema for document processing progress.

Events are sent through the channel layer to the owner's group
(user_<id>) and forwarded to every connected client of that user.

Schema:
{
    "type": "upload_progress|upload_complete|upload_failed",
    "documentId": "uuid-string",
    "jobId": "uuid-string",
    "userId": "uuid-string",
    "stage": "RECEIVED|EXTRACT|CHUNK|ANALYZE|EMBED|STORE|COMPLETE|FAILED",
    "progress": 0-100,
    "message": "optional human-readable message"
}
"""
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional


class EventType(str, Enum):
    UPLOAD_PROGRESS = "upload_progress"
    UPLOAD_COMPLETE = "upload_complete"
    UPLOAD_FAILED = "upload_failed"
    NOTIFICATION = "notification"


# Terminal stages reported in events (jobs themselves stay at STORE)
STAGE_COMPLETE = "COMPLETE"
STAGE_FAILED = "FAILED"


@dataclass
class UploadProgressEvent:
    type: str
    documentId: str
    jobId: str
    userId: str
    stage: str
    progress: int
    message: Optional[str] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def progress(
        cls,
        document_id: str,
        job_id: str,
        user_id: str,
        stage: str,
        progress: int,
        message: Optional[str] = None
    ) -> 'UploadProgressEvent':
        return cls(
            type=EventType.UPLOAD_PROGRESS.value,
            documentId=document_id,
            jobId=job_id,
            userId=user_id,
            stage=stage,
            progress=progress,
            message=message
        )

    @classmethod
    def complete(cls, document_id: str, job_id: str, user_id: str) -> 'UploadProgressEvent':
        return cls(
            type=EventType.UPLOAD_COMPLETE.value,
            documentId=document_id,
            jobId=job_id,
            userId=user_id,
            stage=STAGE_COMPLETE,
            progress=100,
            message="Analysis complete"
        )

    @classmethod
    def failed(
        cls,
        document_id: str,
        job_id: str,
        user_id: str,
        error_message: str
    ) -> 'UploadProgressEvent':
        return cls(
            type=EventType.UPLOAD_FAILED.value,
            documentId=document_id,
            jobId=job_id,
            userId=user_id,
            stage=STAGE_FAILED,
            progress=0,
            message=error_message
        )


def user_group(user_id: str) -> str:
    """Channel layer group holding all WebSocket connections of a user."""
    return f"user_{user_id}"
