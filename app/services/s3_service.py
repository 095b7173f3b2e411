import logging
import uuid

from botocore.exceptions import ClientError
from fastapi import UploadFile, HTTPException

from app.core.config import settings

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {
    "image/jpeg",
    "image/png",
    "image/gif",
}
MAX_IMAGE_SIZE = 5 * 1024 * 1024  # 5 MB
PROFILE_IMAGE_PREFIX = "profile-images"


def _get_session():
    import aiobotocore.session
    session = aiobotocore.session.get_session()
    return session.create_client(
        "s3",
        endpoint_url=f"http://{settings.MINIO_ENDPOINT}",
        aws_access_key_id=settings.MINIO_ACCESS_KEY,
        aws_secret_access_key=settings.MINIO_SECRET_KEY,
        region_name="us-east-1",
    )


async def ensure_bucket_exists() -> None:
    async with _get_session() as client:
        try:
            await client.head_bucket(Bucket=settings.MINIO_BUCKET)
        except ClientError:
            await client.create_bucket(Bucket=settings.MINIO_BUCKET)


def validate_image(file: UploadFile, content: bytes) -> None:
    if file.content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=415,
            detail="Solo se permiten imágenes JPEG, PNG o GIF",
        )
    if len(content) > MAX_IMAGE_SIZE:
        raise HTTPException(
            status_code=413,
            detail="La imagen supera el límite de 5 MB",
        )


def build_profile_image_key(user_id: int, filename: str) -> str:
    ext = filename.rsplit(".", 1)[-1].lower() if filename and "." in filename else "jpg"
    return f"{PROFILE_IMAGE_PREFIX}/{user_id}/{uuid.uuid4().hex}.{ext}"


async def upload_profile_image(user_id: int, file: UploadFile) -> tuple[str, str, int]:
    """Upload a profile image to MinIO. Returns (s3_key, content_type, size)."""
    content = await file.read()
    validate_image(file, content)

    s3_key = build_profile_image_key(user_id, file.filename)
    async with _get_session() as client:
        await client.put_object(
            Bucket=settings.MINIO_BUCKET,
            Key=s3_key,
            Body=content,
            ContentType=file.content_type,
        )
    logger.info("Profile image %s uploaded for user %s (%s bytes)", s3_key, user_id, len(content))
    return s3_key, file.content_type, len(content)


async def generate_presigned_url(s3_key: str, expires: int = 3600) -> str:
    """Generate a pre-signed URL valid for `expires` seconds."""
    async with _get_session() as client:
        url = await client.generate_presigned_url(
            "get_object",
            Params={"Bucket": settings.MINIO_BUCKET, "Key": s3_key},
            ExpiresIn=expires,
        )
    return url


async def delete_file(s3_key: str) -> None:
    async with _get_session() as client:
        await client.delete_object(Bucket=settings.MINIO_BUCKET, Key=s3_key)
