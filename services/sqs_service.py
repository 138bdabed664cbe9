"""
SQS service for sending and consuming queue messages.
"""
import json
from typing import Any, Dict, List, Optional

from botocore.exceptions import ClientError

from logger_config import get_logger
from services.aws_clients import create_client
from utils.decorators import aws_operation, client_error_code
from utils.exceptions import QueueOperationError, ValidationError

logger = get_logger(__name__)

MAX_DELAY_SECONDS = 900
MAX_RECEIVE_BATCH = 10

_QUEUE = {'queue_name': 'queue_name'}

# Query and JSON protocols report a missing queue differently
_MISSING_QUEUE_CODES = ('AWS.SimpleQueueService.NonExistentQueue', 'QueueDoesNotExist')


class SQSService:
    """Service for SQS operations on a single queue."""

    def __init__(self, queue_name: str):
        """
        Initialize SQS service.

        Args:
            queue_name: Name of the SQS queue
        """
        self.queue_name = queue_name
        self._client = None
        self._queue_url: Optional[str] = None

    @property
    def client(self):
        """Lazy initialization of SQS client."""
        if self._client is None:
            self._client = create_client('sqs')
        return self._client

    @property
    def queue_url(self) -> str:
        """Queue URL, resolved once per service instance."""
        if self._queue_url is None:
            self._queue_url = self._resolve_queue_url()
        return self._queue_url

    @aws_operation(QueueOperationError, 'get_queue_url', instance_fields=_QUEUE)
    def _resolve_queue_url(self) -> str:
        response = self.client.get_queue_url(QueueName=self.queue_name)
        return response['QueueUrl']

    @aws_operation(QueueOperationError, 'send_message', instance_fields=_QUEUE)
    def send_message(
        self,
        body: Dict[str, Any] | str,
        delay_seconds: int = 0,
        attributes: Optional[Dict[str, str]] = None
    ) -> str:
        """
        Send a message to the queue.

        Args:
            body: Message body; dicts are JSON-encoded
            delay_seconds: Delivery delay (0-900 seconds)
            attributes: Optional string message attributes

        Returns:
            The SQS message id

        Raises:
            ValidationError: If delay_seconds is out of range
            QueueOperationError: If SQS operation fails
        """
        if not 0 <= delay_seconds <= MAX_DELAY_SECONDS:
            raise ValidationError(
                f'delay_seconds must be between 0 and {MAX_DELAY_SECONDS}',
                field='delay_seconds',
                value=delay_seconds
            )

        params: Dict[str, Any] = {
            'QueueUrl': self.queue_url,
            'MessageBody': body if isinstance(body, str) else json.dumps(body),
            'DelaySeconds': delay_seconds,
        }
        if attributes:
            params['MessageAttributes'] = {
                name: {'DataType': 'String', 'StringValue': value}
                for name, value in attributes.items()
            }

        response = self.client.send_message(**params)
        logger.info(f'Sent message {response["MessageId"]} to queue {self.queue_name}')
        return response['MessageId']

    @aws_operation(QueueOperationError, 'receive_messages', instance_fields=_QUEUE)
    def receive_messages(
        self,
        max_messages: int = 1,
        wait_time_seconds: int = 0
    ) -> List[Dict[str, Any]]:
        """
        Receive up to ``max_messages`` messages.

        Bodies that are valid JSON are decoded; others are returned as text.

        Returns:
            List of dicts with 'message_id', 'receipt_handle', 'body'
            and 'attributes'
        """
        if not 1 <= max_messages <= MAX_RECEIVE_BATCH:
            raise ValidationError(
                f'max_messages must be between 1 and {MAX_RECEIVE_BATCH}',
                field='max_messages',
                value=max_messages
            )

        response = self.client.receive_message(
            QueueUrl=self.queue_url,
            MaxNumberOfMessages=max_messages,
            WaitTimeSeconds=wait_time_seconds,
            MessageAttributeNames=['All']
        )

        messages = []
        for message in response.get('Messages', []):
            try:
                body = json.loads(message['Body'])
            except ValueError:
                body = message['Body']
            messages.append({
                'message_id': message['MessageId'],
                'receipt_handle': message['ReceiptHandle'],
                'body': body,
                'attributes': {
                    name: attr.get('StringValue')
                    for name, attr in message.get('MessageAttributes', {}).items()
                },
            })

        logger.info(f'Received {len(messages)} messages from queue {self.queue_name}')
        return messages

    @aws_operation(QueueOperationError, 'delete_message', instance_fields=_QUEUE)
    def delete_message(self, receipt_handle: str) -> None:
        self.client.delete_message(QueueUrl=self.queue_url, ReceiptHandle=receipt_handle)

    @aws_operation(QueueOperationError, 'create_queue', instance_fields=_QUEUE)
    def create_queue_if_absent(self, attributes: Optional[Dict[str, str]] = None) -> bool:
        """
        Create the queue unless it already exists.

        Returns:
            True if the queue was created, False if it already existed
        """
        try:
            response = self.client.get_queue_url(QueueName=self.queue_name)
            self._queue_url = response['QueueUrl']
            logger.info(f'Queue {self.queue_name} already exists')
            return False
        except ClientError as e:
            if client_error_code(e) not in _MISSING_QUEUE_CODES:
                raise

        response = self.client.create_queue(
            QueueName=self.queue_name, Attributes=attributes or {}
        )
        self._queue_url = response['QueueUrl']
        logger.info(f'Created queue {self.queue_name}')
        return True
