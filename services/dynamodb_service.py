"""
DynamoDB service for table operations.

Items use the low-level attribute-value format ({'S': ...}, {'N': ...});
``serialize_item`` / ``deserialize_item`` convert from and to plain dicts.
"""
from typing import Dict, Any, Optional, List, TYPE_CHECKING

from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
from botocore.exceptions import ClientError

from logger_config import get_logger
from services.aws_clients import create_client
from utils.decorators import aws_operation, client_error_code
from utils.exceptions import TableOperationError

if TYPE_CHECKING:
    from mypy_boto3_dynamodb import DynamoDBClient
else:
    DynamoDBClient = Any

logger = get_logger(__name__)

_TABLE = {'table_name': 'table_name'}

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()


def serialize_item(item: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Convert a plain dict to DynamoDB attribute-value format."""
    return {name: _serializer.serialize(value) for name, value in item.items()}


def deserialize_item(item: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
    """Convert a DynamoDB attribute-value item to a plain dict."""
    return {name: _deserializer.deserialize(value) for name, value in item.items()}


class DynamoDBService:
    """Service for DynamoDB operations."""

    def __init__(self) -> None:
        """Initialize DynamoDB service."""
        self._client: Optional[DynamoDBClient] = None

    @property
    def client(self) -> DynamoDBClient:
        """Lazy initialization of DynamoDB client."""
        if self._client is None:
            self._client = create_client('dynamodb')
        return self._client

    @aws_operation(TableOperationError, 'get_item', fields=_TABLE)
    def get_item(
        self,
        table_name: str,
        key: Dict[str, Dict[str, str]]
    ) -> Optional[Dict[str, Any]]:
        """
        Get an item from DynamoDB table.

        Args:
            table_name: Name of the DynamoDB table
            key: Dictionary with attribute names and values in DynamoDB format

        Returns:
            Item dictionary if found, None otherwise

        Raises:
            TableOperationError: If DynamoDB operation fails
        """
        response = self.client.get_item(TableName=table_name, Key=key)
        return response.get('Item')

    @aws_operation(TableOperationError, 'put_item', fields=_TABLE)
    def put_item(
        self,
        table_name: str,
        item: Dict[str, Dict[str, Any]],
        condition_expression: Optional[str] = None
    ) -> None:
        """
        Put an item into DynamoDB table.

        Args:
            table_name: Name of the DynamoDB table
            item: Item dictionary in DynamoDB format
            condition_expression: Optional ConditionExpression

        Raises:
            TableOperationError: If DynamoDB operation fails, including a
                failed condition (error_code ConditionalCheckFailedException)
        """
        params: Dict[str, Any] = {'TableName': table_name, 'Item': item}
        if condition_expression:
            params['ConditionExpression'] = condition_expression
        self.client.put_item(**params)
        logger.info(f'Successfully put item to DynamoDB table {table_name}')

    @aws_operation(TableOperationError, 'put_item', fields=_TABLE)
    def put_item_if_absent(
        self,
        table_name: str,
        item: Dict[str, Dict[str, Any]],
        key_attribute: str
    ) -> bool:
        """
        Put ``item`` only if no item with the same key exists.

        Returns:
            True if written, False if an item with that key was already there
        """
        try:
            self.client.put_item(
                TableName=table_name,
                Item=item,
                ConditionExpression=f'attribute_not_exists({key_attribute})'
            )
        except ClientError as e:
            if client_error_code(e) == 'ConditionalCheckFailedException':
                logger.info(
                    f'Item {key_attribute}={item.get(key_attribute)} already '
                    f'exists in {table_name}, skipping'
                )
                return False
            raise

        logger.info(f'Successfully put item to DynamoDB table {table_name}')
        return True

    @aws_operation(TableOperationError, 'delete_item', fields=_TABLE)
    def delete_item(self, table_name: str, key: Dict[str, Dict[str, str]]) -> None:
        self.client.delete_item(TableName=table_name, Key=key)

    @aws_operation(TableOperationError, 'query', fields=_TABLE)
    def query(
        self,
        table_name: str,
        key_condition_expression: str,
        expression_attribute_values: Dict[str, Dict[str, Any]]
    ) -> List[Dict[str, Any]]:
        """
        Run a key-condition query, following pagination.

        Returns:
            Matching items in DynamoDB format
        """
        paginator = self.client.get_paginator('query')
        items: List[Dict[str, Any]] = []
        for page in paginator.paginate(
            TableName=table_name,
            KeyConditionExpression=key_condition_expression,
            ExpressionAttributeValues=expression_attribute_values
        ):
            items.extend(page.get('Items', []))
        return items

    @aws_operation(TableOperationError, 'create_table', fields=_TABLE)
    def create_table_if_absent(
        self,
        table_name: str,
        hash_key: str,
        range_key: Optional[str] = None,
        billing_mode: str = 'PAY_PER_REQUEST'
    ) -> bool:
        """
        Create a table with string key attributes unless it already exists.

        Args:
            table_name: Name of the DynamoDB table
            hash_key: Partition key attribute name
            range_key: Optional sort key attribute name
            billing_mode: PAY_PER_REQUEST or PROVISIONED

        Returns:
            True if the table was created, False if it already existed
        """
        attribute_definitions = [{'AttributeName': hash_key, 'AttributeType': 'S'}]
        key_schema = [{'AttributeName': hash_key, 'KeyType': 'HASH'}]
        if range_key:
            attribute_definitions.append({'AttributeName': range_key, 'AttributeType': 'S'})
            key_schema.append({'AttributeName': range_key, 'KeyType': 'RANGE'})

        params: Dict[str, Any] = {
            'TableName': table_name,
            'AttributeDefinitions': attribute_definitions,
            'KeySchema': key_schema,
            'BillingMode': billing_mode,
        }
        if billing_mode == 'PROVISIONED':
            params['ProvisionedThroughput'] = {
                'ReadCapacityUnits': 5,
                'WriteCapacityUnits': 5,
            }

        try:
            self.client.create_table(**params)
        except ClientError as e:
            if client_error_code(e) == 'ResourceInUseException':
                logger.info(f'Table {table_name} already exists')
                return False
            raise

        logger.info(f'Created DynamoDB table {table_name}')
        return True
