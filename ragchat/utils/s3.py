# ragchat/utils/s3.py
import boto3
from ragchat.core.config import settings


def s3_enabled() -> bool:
    return bool(settings.S3_BUCKET)


def _client():
    if not settings.S3_BUCKET:
        raise RuntimeError("S3 not configured")
    return boto3.client(
        "s3",
        endpoint_url=settings.S3_ENDPOINT,
        aws_access_key_id=settings.S3_ACCESS_KEY,
        aws_secret_access_key=settings.S3_SECRET_KEY,
    )


def upload_bytes_to_s3(key: str, data: bytes, content_type: str = None) -> str:
    extra = {"ContentType": content_type} if content_type else {}
    _client().put_object(Bucket=settings.S3_BUCKET, Key=key, Body=data, **extra)
    return object_url(key)


def delete_from_s3(key: str):
    _client().delete_object(Bucket=settings.S3_BUCKET, Key=key)


def object_url(key: str) -> str:
    if settings.S3_ENDPOINT:
        return f"{settings.S3_ENDPOINT.rstrip('/')}/{settings.S3_BUCKET}/{key}"
    return f"https://{settings.S3_BUCKET}.s3.amazonaws.com/{key}"
