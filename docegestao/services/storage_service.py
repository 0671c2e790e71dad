"""
Object Storage Service for product images (S3-compatible: AWS S3, MinIO,
DigitalOcean Spaces, Supabase Storage's S3 endpoint).

Only the remote backend uploads images; in local mode the upload
operation is rejected before this service is ever constructed.

Architecture:
- Uses boto3 (AWS SDK for Python)
- Objects get a random key so uploads never overwrite each other
- Objects are public-read; the returned URL is stored on the product
"""
import json
import logging
import mimetypes
import uuid
from typing import Optional

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from flask import current_app
from werkzeug.datastructures import FileStorage

from docegestao.exceptions import UploadError

logger = logging.getLogger(__name__)

PERMISSION_DENIED_MESSAGE = (
    'Erro de permissão no armazenamento de imagens. Verifique se o Bucket '
    '"{bucket}" foi criado e é Público.'
)
UPLOAD_FAILED_MESSAGE = (
    'Erro ao enviar imagem. Verifique se o Bucket "{bucket}" foi criado e é Público.'
)
_PERMISSION_CODES = {'AccessDenied', '403', 'Forbidden', 'Unauthorized'}


class StorageService:
    """
    S3-compatible object storage service.

    Usage:
        storage = StorageService()
        url = storage.upload_image(request.files['image'])
    """

    def __init__(self, config=None, client=None):
        """Initialize S3 client from Flask config (or an explicit mapping)."""
        config = config if config is not None else current_app.config
        self.endpoint = config['S3_ENDPOINT']
        self.bucket = config['S3_BUCKET']
        self.region = config['S3_REGION']
        self.public_url = config['S3_PUBLIC_URL'].rstrip('/')
        self.max_size = config.get('MAX_UPLOAD_SIZE', 2 * 1024 * 1024)
        self.allowed_types = config.get('ALLOWED_MIME_TYPES', set())

        if client is not None:
            self.client = client
        else:
            self.client = boto3.client(
                's3',
                endpoint_url=self.endpoint,
                aws_access_key_id=config['S3_ACCESS_KEY'],
                aws_secret_access_key=config['S3_SECRET_KEY'],
                region_name=self.region,
                config=BotoConfig(signature_version='s3v4')
            )
            # Ensure bucket exists
            self._ensure_bucket_exists()

    def _ensure_bucket_exists(self):
        """Create bucket if it doesn't exist."""
        try:
            self.client.head_bucket(Bucket=self.bucket)
            logger.info(f"[STORAGE] Bucket '{self.bucket}' exists")
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code')
            if error_code not in ('404', 'NoSuchBucket'):
                logger.error(f"[STORAGE] ✗ Failed to check bucket: {e}")
                raise
            try:
                self.client.create_bucket(Bucket=self.bucket)
                logger.info(f"[STORAGE] ✓ Bucket '{self.bucket}' created")

                # Product images are served directly from the bucket
                policy = {
                    "Version": "2012-10-17",
                    "Statement": [
                        {
                            "Effect": "Allow",
                            "Principal": {"AWS": "*"},
                            "Action": "s3:GetObject",
                            "Resource": f"arn:aws:s3:::{self.bucket}/*"
                        }
                    ]
                }
                self.client.put_bucket_policy(
                    Bucket=self.bucket,
                    Policy=json.dumps(policy)
                )
                logger.info(f"[STORAGE] ✓ Bucket '{self.bucket}' policy set to public-read")
            except ClientError as create_error:
                logger.error(f"[STORAGE] ✗ Failed to create bucket: {create_error}")
                raise

    def upload_image(self, file: FileStorage) -> str:
        """
        Upload a product image and return its public URL.

        Args:
            file: Werkzeug FileStorage object from request.files

        Returns:
            Public URL of uploaded file

        Raises:
            UploadError: validation failure, permission failure (403) or
                any other storage failure
        """
        content_type = self._validate_file(file)
        object_name = self._object_name(file.filename, content_type)

        extra_args = {
            'ContentType': content_type,
            'ACL': 'public-read'
        }

        try:
            file.stream.seek(0)
            logger.info(f"[STORAGE] Uploading '{object_name}' to bucket '{self.bucket}'...")
            self.client.upload_fileobj(
                file.stream,
                self.bucket,
                object_name,
                ExtraArgs=extra_args
            )
        except ClientError as e:
            error = e.response.get('Error', {})
            status = e.response.get('ResponseMetadata', {}).get('HTTPStatusCode')
            if error.get('Code') in _PERMISSION_CODES or status == 403:
                logger.error(f"[STORAGE] ✗ Permission denied uploading '{object_name}': {e}")
                raise UploadError(
                    PERMISSION_DENIED_MESSAGE.format(bucket=self.bucket),
                    permission_denied=True
                ) from e
            logger.exception(f"[STORAGE] ✗ Upload failed: {e}")
            raise UploadError(UPLOAD_FAILED_MESSAGE.format(bucket=self.bucket)) from e
        except BotoCoreError as e:
            logger.exception(f"[STORAGE] ✗ Upload failed: {e}")
            raise UploadError(UPLOAD_FAILED_MESSAGE.format(bucket=self.bucket)) from e

        url = self.get_public_url(object_name)
        logger.info(f"[STORAGE] ✓ File uploaded: {url}")
        return url

    def get_public_url(self, object_name: str) -> str:
        """
        Get public URL for an object.

        Returns:
            Public URL (e.g., 'http://localhost:9000/images/3f2a....png')
        """
        return f"{self.public_url}/{self.bucket}/{object_name}"

    @staticmethod
    def _object_name(filename: Optional[str], content_type: str) -> str:
        """Random object key keeping the original extension."""
        ext = ''
        if filename and '.' in filename:
            ext = filename.rsplit('.', 1)[1].lower()
        if not ext:
            guessed = mimetypes.guess_extension(content_type) or ''
            ext = guessed.lstrip('.')
        return f"{uuid.uuid4().hex}.{ext}" if ext else uuid.uuid4().hex

    def _validate_file(self, file: FileStorage) -> str:
        """
        Validate uploaded file (size, type).

        Returns:
            The content type to store the object with

        Raises:
            UploadError: If validation fails
        """
        if not file or not file.filename:
            raise UploadError("Nenhum arquivo enviado")

        stream = file.stream
        stream.seek(0, 2)  # Seek to end
        file_size = stream.tell()
        stream.seek(0)  # Reset

        if file_size > self.max_size:
            max_mb = self.max_size / (1024 * 1024)
            raise UploadError(f"Arquivo muito grande. Máximo {max_mb:.1f}MB")

        content_type = (
            file.mimetype
            or mimetypes.guess_type(file.filename)[0]
            or 'application/octet-stream'
        )
        if self.allowed_types and content_type not in self.allowed_types:
            allowed = ', '.join(sorted(self.allowed_types))
            raise UploadError(f"Tipo de arquivo não permitido: {content_type}. Permitidos: {allowed}")

        logger.info(f"[STORAGE] ✓ File validation passed: {file.filename} ({file_size} bytes, {content_type})")
        return content_type


# Singleton instance
_storage_service = None


def get_storage_service() -> StorageService:
    """
    Get or create StorageService singleton.

    Returns:
        StorageService instance
    """
    global _storage_service
    if _storage_service is None:
        _storage_service = StorageService()
    return _storage_service


def reset_storage_service():
    """Drop the cached client (app teardown and tests)."""
    global _storage_service
    _storage_service = None
