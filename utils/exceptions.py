"""
Custom exception classes for AWS service wrappers and provisioning.
"""
from typing import Optional, Any, List, Dict


class AWSServiceError(Exception):
    """Base exception for failed calls to an AWS service."""

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        operation: Optional[str] = None,
        error_code: Optional[str] = None
    ):
        """
        Initialize AWS service error.

        Args:
            message: Error message
            service: AWS service name (e.g. 's3', 'events')
            operation: Wrapper operation that failed
            error_code: AWS error code if available
        """
        super().__init__(message)
        self.message = message
        self.service = service
        self.operation = operation
        self.error_code = error_code


class S3OperationError(AWSServiceError):
    """Exception raised for S3 operation errors."""

    def __init__(
        self,
        message: str,
        bucket: Optional[str] = None,
        key: Optional[str] = None,
        **kwargs: Any
    ):
        kwargs.setdefault('service', 's3')
        super().__init__(message, **kwargs)
        self.bucket = bucket
        self.key = key


class QueueOperationError(AWSServiceError):
    """Exception raised for SQS operation errors."""

    def __init__(self, message: str, queue_name: Optional[str] = None, **kwargs: Any):
        kwargs.setdefault('service', 'sqs')
        super().__init__(message, **kwargs)
        self.queue_name = queue_name


class TableOperationError(AWSServiceError):
    """Exception raised for DynamoDB operation errors."""

    def __init__(self, message: str, table_name: Optional[str] = None, **kwargs: Any):
        kwargs.setdefault('service', 'dynamodb')
        super().__init__(message, **kwargs)
        self.table_name = table_name


class EventPublishError(AWSServiceError):
    """Exception raised when EventBridge rejects or fails to accept events."""

    def __init__(
        self,
        message: str,
        failed_entries: Optional[List[Dict[str, Any]]] = None,
        published_event_ids: Optional[List[str]] = None,
        **kwargs: Any
    ):
        """
        Initialize event publish error.

        Args:
            message: Error message
            failed_entries: PutEvents result entries that carry an ErrorCode
            published_event_ids: Ids of events accepted before the failure
        """
        kwargs.setdefault('service', 'events')
        super().__init__(message, **kwargs)
        self.failed_entries = failed_entries or []
        self.published_event_ids = published_event_ids or []


class EmailDeliveryError(AWSServiceError):
    """Exception raised for SES send errors."""

    def __init__(
        self,
        message: str,
        recipients: Optional[List[str]] = None,
        **kwargs: Any
    ):
        kwargs.setdefault('service', 'ses')
        super().__init__(message, **kwargs)
        if isinstance(recipients, str):
            recipients = [recipients]
        self.recipients = list(recipients or [])


class SecretRetrievalError(AWSServiceError):
    """Exception raised for Secrets Manager errors."""

    def __init__(self, message: str, secret_id: Optional[str] = None, **kwargs: Any):
        kwargs.setdefault('service', 'secretsmanager')
        super().__init__(message, **kwargs)
        self.secret_id = secret_id


class ParameterRetrievalError(AWSServiceError):
    """Exception raised for SSM Parameter Store errors."""

    def __init__(self, message: str, parameter_name: Optional[str] = None, **kwargs: Any):
        kwargs.setdefault('service', 'ssm')
        super().__init__(message, **kwargs)
        self.parameter_name = parameter_name


class ProvisioningError(Exception):
    """Exception raised when a LocalStack resource cannot be provisioned."""

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        resource_name: Optional[str] = None
    ):
        """
        Initialize provisioning error.

        Args:
            message: Error message
            resource_type: Kind of resource (bucket, queue, table, ...)
            resource_name: Name of the resource if available
        """
        super().__init__(message)
        self.message = message
        self.resource_type = resource_type
        self.resource_name = resource_name


class ValidationError(Exception):
    """Exception raised for validation errors."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None
    ):
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Field name that failed validation if available
            value: Invalid value if available
        """
        super().__init__(message)
        self.message = message
        self.field = field
        self.value = value
