"""Unit tests for S3 asset storage"""

import io
import pytest
from unittest.mock import MagicMock

from botocore.exceptions import ClientError

from backend.app.core.exceptions import ExternalServiceException, ValidationException
from backend.app.services.s3_service import AssetKind, S3Service, build_key, validate_upload


def client_error(operation: str) -> ClientError:
    return ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, operation)


class TestUploadValidation:

    def test_resume_accepts_documents(self):
        validate_upload(AssetKind.RESUME, "cv.PDF", 1024)
        validate_upload(AssetKind.RESUME, "cv.docx", None)

    def test_resume_rejects_video(self):
        with pytest.raises(ValidationException) as exc:
            validate_upload(AssetKind.RESUME, "cv.mp4", 1024)
        assert exc.value.details["extension"] == ".mp4"

    def test_video_rejects_documents(self):
        with pytest.raises(ValidationException):
            validate_upload(AssetKind.ABOUT_ME_VIDEO, "me.pdf", 1024)

    def test_size_limit(self):
        with pytest.raises(ValidationException, match="too large"):
            validate_upload(AssetKind.RESUME, "cv.pdf", 50 * 1024 * 1024)

        validate_upload(AssetKind.SALES_PITCH_VIDEO, "pitch.mp4", 50 * 1024 * 1024)

    def test_missing_extension(self):
        with pytest.raises(ValidationException):
            validate_upload(AssetKind.RESUME, "resume", 10)

    def test_key_is_prefixed_and_sanitized(self):
        key = build_key(AssetKind.RESUME, "c-1", "../My CV (final).pdf")

        prefix, owner, name = key.split("/")
        assert prefix == "resume"
        assert owner == "c-1"
        assert name.endswith("_My_CV_final_.pdf")


class TestS3Service:

    @pytest.fixture
    def s3_client(self):
        return MagicMock()

    @pytest.fixture
    def service(self, s3_client):
        return S3Service(client=s3_client)

    @pytest.mark.asyncio
    async def test_upload_asset(self, service, s3_client):
        body = io.BytesIO(b"%PDF-1.4")

        key = await service.upload_asset(AssetKind.RESUME, "c-1", body, "cv.pdf", "application/pdf", 8)

        assert key.startswith("resume/c-1/")
        args, kwargs = s3_client.upload_fileobj.call_args
        assert args == (body, service.bucket_name, key)
        assert kwargs["ExtraArgs"] == {"ServerSideEncryption": "AES256", "ContentType": "application/pdf"}

    @pytest.mark.asyncio
    async def test_upload_rejected_before_s3(self, service, s3_client):
        with pytest.raises(ValidationException):
            await service.upload_asset(AssetKind.RESUME, "c-1", io.BytesIO(b""), "cv.exe")

        s3_client.upload_fileobj.assert_not_called()

    @pytest.mark.asyncio
    async def test_upload_failure(self, service, s3_client):
        s3_client.upload_fileobj.side_effect = client_error("PutObject")

        with pytest.raises(ExternalServiceException) as exc:
            await service.upload_asset(AssetKind.TRAINING_VIDEO, "m-1", io.BytesIO(b""), "intro.mp4")
        assert exc.value.status_code == 502

    @pytest.mark.asyncio
    async def test_presigned_url(self, service, s3_client):
        s3_client.generate_presigned_url.return_value = "https://signed"

        assert await service.generate_presigned_url("resume/c-1/cv.pdf", expiration=60) == "https://signed"
        s3_client.generate_presigned_url.assert_called_once_with(
            "get_object",
            Params={"Bucket": service.bucket_name, "Key": "resume/c-1/cv.pdf"},
            ExpiresIn=60,
        )

    @pytest.mark.asyncio
    async def test_external_urls_pass_through(self, service, s3_client):
        url = "https://videos.example.com/intro.mp4"

        assert await service.generate_presigned_url(url) == url
        s3_client.generate_presigned_url.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_failure(self, service, s3_client):
        s3_client.delete_object.side_effect = client_error("DeleteObject")

        with pytest.raises(ExternalServiceException):
            await service.delete_object("resume/c-1/cv.pdf")
