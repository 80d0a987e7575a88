"""S3 service for candidate and training asset storage"""

import boto3
from botocore.exceptions import ClientError
from typing import Optional, BinaryIO
from datetime import datetime, timezone
from functools import lru_cache
import enum
import os
import re

from backend.app.core.config import settings
from backend.app.core.logging import get_logger
from backend.app.core.exceptions import ExternalServiceException, ValidationException

logger = get_logger(__name__)


class AssetKind(str, enum.Enum):
    RESUME = "resume"
    ABOUT_ME_VIDEO = "about_me_video"
    SALES_PITCH_VIDEO = "sales_pitch_video"
    TRAINING_VIDEO = "training_video"


DOCUMENT_KINDS = {AssetKind.RESUME}

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def allowed_extensions(kind: AssetKind) -> list[str]:
    if kind in DOCUMENT_KINDS:
        return settings.DOCUMENT_EXTENSIONS
    return settings.VIDEO_EXTENSIONS


def max_size(kind: AssetKind) -> int:
    if kind in DOCUMENT_KINDS:
        return settings.MAX_DOCUMENT_SIZE
    return settings.MAX_VIDEO_SIZE


def validate_upload(kind: AssetKind, filename: str, size: Optional[int]) -> None:
    """
    Reject files with the wrong extension or over the size limit

    Raises:
        ValidationException: If the file is not acceptable for ``kind``
    """
    extension = os.path.splitext(filename or "")[1].lower()
    if extension not in allowed_extensions(kind):
        raise ValidationException(
            f"Unsupported file type for {kind.value}",
            details={"extension": extension, "allowed": allowed_extensions(kind)},
        )

    if size is not None and size > max_size(kind):
        raise ValidationException(
            f"File too large for {kind.value}",
            details={"size": size, "max_size": max_size(kind)},
        )


def build_key(kind: AssetKind, owner_id: str, filename: str) -> str:
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    safe_name = _UNSAFE_CHARS.sub("_", os.path.basename(filename)) or "upload"
    return f"{kind.value}/{owner_id}/{timestamp}_{safe_name}"


class S3Service:
    """Service for S3 file operations"""

    def __init__(self, client=None):
        self.s3_client = client or boto3.client(
            's3',
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            region_name=settings.AWS_REGION
        )
        self.bucket_name = settings.S3_BUCKET_NAME

    async def upload_asset(
        self,
        kind: AssetKind,
        owner_id: str,
        file_content: BinaryIO,
        filename: str,
        content_type: Optional[str] = None,
        size: Optional[int] = None,
    ) -> str:
        """
        Upload a file to S3

        Args:
            kind: What the file is; decides the key prefix and limits
            owner_id: Candidate or module id the file belongs to
            file_content: File content as binary stream
            filename: Original filename
            content_type: MIME type of file
            size: Size in bytes when known up front

        Returns:
            S3 object key

        Raises:
            ValidationException: If the file is rejected
            ExternalServiceException: If S3 rejects the upload
        """
        validate_upload(kind, filename, size)
        s3_key = build_key(kind, str(owner_id), filename)

        extra_args = {'ServerSideEncryption': 'AES256'}
        if content_type:
            extra_args['ContentType'] = content_type

        try:
            self.s3_client.upload_fileobj(file_content, self.bucket_name, s3_key, ExtraArgs=extra_args)
        except ClientError as e:
            logger.error(f"S3 upload failed: {str(e)}")
            raise ExternalServiceException("s3", f"Failed to upload {kind.value}")

        logger.info(f"Uploaded {kind.value} to S3: {s3_key}")
        return s3_key

    async def delete_object(self, s3_key: str) -> None:
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=s3_key)
        except ClientError as e:
            logger.error(f"S3 deletion failed: {str(e)}")
            raise ExternalServiceException("s3", "Failed to delete file")

        logger.info(f"Deleted object from S3: {s3_key}")

    async def generate_presigned_url(self, s3_key: str, expiration: Optional[int] = None) -> str:
        """
        Generate presigned URL for secure file access

        Keys that are already absolute URLs (externally hosted training
        videos) are returned unchanged.
        """
        if s3_key.startswith(("http://", "https://")):
            return s3_key

        try:
            return self.s3_client.generate_presigned_url(
                'get_object',
                Params={'Bucket': self.bucket_name, 'Key': s3_key},
                ExpiresIn=expiration or settings.PRESIGNED_URL_EXPIRATION
            )
        except ClientError as e:
            logger.error(f"Presigned URL generation failed: {str(e)}")
            raise ExternalServiceException("s3", "Failed to generate download URL")


@lru_cache
def get_s3_service() -> S3Service:
    """Dependency returning the shared S3 service"""
    return S3Service()
