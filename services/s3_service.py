"""
S3 service for object storage operations.
"""
import json
from typing import Dict, Any, Optional, List

from botocore.exceptions import ClientError

from config import get_config
from logger_config import get_logger
from services.aws_clients import create_client, create_resource
from utils.decorators import aws_operation, client_error_code
from utils.exceptions import S3OperationError

logger = get_logger(__name__)

_KEY = {'key': 'key'}
_BUCKET = {'bucket': 'bucket_name'}


class S3Service:
    """Service for S3 operations on a single bucket."""

    def __init__(self, bucket_name: str):
        """
        Initialize S3 service.

        Args:
            bucket_name: Name of the S3 bucket
        """
        self.bucket_name = bucket_name
        self._s3_resource = None
        self._s3_client = None

    @property
    def s3_resource(self):
        """Lazy initialization of S3 resource."""
        if self._s3_resource is None:
            self._s3_resource = create_resource('s3')
        return self._s3_resource

    @property
    def s3_client(self):
        """Lazy initialization of S3 client."""
        if self._s3_client is None:
            self._s3_client = create_client('s3')
        return self._s3_client

    def object_exists(self, key: str) -> bool:
        """
        Check if an object exists in the bucket.

        Args:
            key: S3 object key

        Returns:
            True if object exists, False otherwise
        """
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=key)
            return True
        except ClientError as e:
            if client_error_code(e) in ('404', 'NoSuchKey'):
                return False
            logger.warning(f'S3 head_object failed for key {key}: {str(e)}')
            return False

    @aws_operation(S3OperationError, 'put_object', fields=_KEY, instance_fields=_BUCKET)
    def put_object(
        self,
        key: str,
        body: bytes | str,
        content_type: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None
    ) -> None:
        """
        Put an object into S3 bucket.

        Args:
            key: S3 object key
            body: Object body (bytes or string)
            content_type: Optional Content-Type header
            metadata: Optional metadata dictionary

        Raises:
            S3OperationError: If S3 operation fails
        """
        s3_object = self.s3_resource.Object(self.bucket_name, key)

        put_kwargs: Dict[str, Any] = {
            'Body': body.encode('UTF-8') if isinstance(body, str) else body
        }
        if content_type:
            put_kwargs['ContentType'] = content_type
        if metadata:
            put_kwargs['Metadata'] = metadata

        s3_object.put(**put_kwargs)
        logger.info(f'Successfully put object to s3://{self.bucket_name}/{key}')

    def put_json_object(
        self,
        key: str,
        data: Dict[str, Any],
        metadata: Optional[Dict[str, str]] = None
    ) -> None:
        """Serialize ``data`` as JSON and put it at ``key``."""
        self.put_object(
            key, json.dumps(data), content_type='application/json', metadata=metadata
        )

    @aws_operation(S3OperationError, 'get_object', fields=_KEY, instance_fields=_BUCKET)
    def get_object(self, key: str) -> bytes:
        """
        Read an object body.

        Raises:
            S3OperationError: If the object is missing or the read fails
        """
        response = self.s3_client.get_object(Bucket=self.bucket_name, Key=key)
        return response['Body'].read()

    def get_json_object(self, key: str) -> Dict[str, Any]:
        """Read an object and decode it as JSON."""
        body = self.get_object(key)
        try:
            return json.loads(body)
        except ValueError as e:
            raise S3OperationError(
                f'Object s3://{self.bucket_name}/{key} is not valid JSON',
                bucket=self.bucket_name,
                key=key,
                operation='get_json_object'
            ) from e

    @aws_operation(S3OperationError, 'delete_object', fields=_KEY, instance_fields=_BUCKET)
    def delete_object(self, key: str) -> None:
        self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
        logger.info(f'Deleted s3://{self.bucket_name}/{key}')

    @aws_operation(S3OperationError, 'list_keys', instance_fields=_BUCKET)
    def list_keys(self, prefix: str = '') -> List[str]:
        """
        List every key under ``prefix``, following pagination.

        Args:
            prefix: Key prefix filter

        Returns:
            Object keys in listing order
        """
        paginator = self.s3_client.get_paginator('list_objects_v2')
        keys: List[str] = []
        for page in paginator.paginate(Bucket=self.bucket_name, Prefix=prefix):
            keys.extend(obj['Key'] for obj in page.get('Contents', []))
        return keys

    @aws_operation(S3OperationError, 'generate_presigned_url', fields=_KEY, instance_fields=_BUCKET)
    def generate_presigned_url(
        self,
        key: str,
        expires_in: int = 3600,
        method: str = 'get_object'
    ) -> str:
        """
        Generate a presigned URL for downloading or uploading ``key``.

        Args:
            key: S3 object key
            expires_in: Lifetime of the URL in seconds
            method: 'get_object' or 'put_object'

        Returns:
            The presigned URL
        """
        if method not in ('get_object', 'put_object'):
            raise ValueError(f"method must be 'get_object' or 'put_object', got: {method}")
        return self.s3_client.generate_presigned_url(
            ClientMethod=method,
            Params={'Bucket': self.bucket_name, 'Key': key},
            ExpiresIn=expires_in
        )

    @aws_operation(S3OperationError, 'create_bucket', instance_fields=_BUCKET)
    def create_bucket_if_absent(self) -> bool:
        """
        Create the bucket unless it already exists.

        Returns:
            True if the bucket was created, False if it already existed
        """
        try:
            self.s3_client.head_bucket(Bucket=self.bucket_name)
            logger.info(f'Bucket {self.bucket_name} already exists')
            return False
        except ClientError as e:
            if client_error_code(e) not in ('404', 'NoSuchBucket', 'NotFound'):
                raise

        region = get_config().aws_region
        create_kwargs: Dict[str, Any] = {'Bucket': self.bucket_name}
        # us-east-1 rejects an explicit LocationConstraint
        if region != 'us-east-1':
            create_kwargs['CreateBucketConfiguration'] = {'LocationConstraint': region}

        self.s3_client.create_bucket(**create_kwargs)
        logger.info(f'Created bucket {self.bucket_name}')
        return True
