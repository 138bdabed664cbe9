"""
Tests for the error-translating and Lambda handler decorators.
"""
import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from utils.decorators import aws_operation, client_error_code, lambda_handler
from utils.exceptions import (
    S3OperationError,
    SecretRetrievalError,
    ValidationError,
)


class FakeBucketService:
    bucket_name = 'products-images'

    def __init__(self, error):
        self.error = error

    @aws_operation(S3OperationError, 'get_object',
                   fields={'key': 'key'}, instance_fields={'bucket': 'bucket_name'})
    def get_object(self, key):
        raise self.error


def _client_error(code, operation='GetObject'):
    return ClientError({'Error': {'Code': code, 'Message': 'boom'}}, operation)


class TestAwsOperation:
    """Tests for aws_operation."""

    def test_client_error_translated_with_context(self):
        service = FakeBucketService(_client_error('NoSuchKey'))

        with pytest.raises(S3OperationError) as exc_info:
            service.get_object('images/1.png')

        error = exc_info.value
        assert error.service == 's3'
        assert error.operation == 'get_object'
        assert error.error_code == 'NoSuchKey'
        assert error.bucket == 'products-images'
        assert error.key == 'images/1.png'
        assert isinstance(error.__cause__, ClientError)

    def test_keyword_argument_context(self):
        service = FakeBucketService(_client_error('AccessDenied'))

        with pytest.raises(S3OperationError) as exc_info:
            service.get_object(key='private.png')

        assert exc_info.value.key == 'private.png'

    def test_botocore_error_has_no_code(self):
        service = FakeBucketService(
            EndpointConnectionError(endpoint_url='http://localhost:4566')
        )

        with pytest.raises(S3OperationError) as exc_info:
            service.get_object('a')

        assert exc_info.value.error_code is None

    def test_other_exceptions_propagate_unchanged(self):
        service = FakeBucketService(KeyError('Body'))

        with pytest.raises(KeyError):
            service.get_object('a')

    def test_client_error_code(self):
        assert client_error_code(_client_error('ResourceExistsException')) == 'ResourceExistsException'
        assert client_error_code(ValueError('x')) is None


class TestLambdaHandler:
    """Tests for lambda_handler."""

    def test_success_adds_correlation_id(self, mock_context):
        @lambda_handler
        def handler(event, context):
            return {'ok': True}

        result = handler({}, mock_context)

        assert result['ok'] is True
        assert 'correlation_id' in result['metadata']

    def test_non_dict_result_wrapped(self, mock_context):
        @lambda_handler
        def handler(event, context):
            return ['a', 'b']

        result = handler({}, mock_context)

        assert result['result'] == ['a', 'b']

    def test_validation_error_response(self, mock_context):
        @lambda_handler
        def handler(event, context):
            raise ValidationError('source is required', field='source')

        result = handler({}, mock_context)

        assert result['error']['type'] == 'ValidationError'
        assert result['error']['message'] == 'source is required'
        assert result['metadata']['handler'] == 'handler'

    def test_service_error_response(self, mock_context):
        @lambda_handler
        def handler(event, context):
            raise SecretRetrievalError(
                'get_secret_value failed', secret_id='prod/jwt/secret',
                operation='get_secret_value', error_code='ResourceNotFoundException'
            )

        result = handler({}, mock_context)

        assert result['error']['type'] == 'SecretRetrievalError'
        assert result['error']['service'] == 'secretsmanager'
        assert result['error']['error_code'] == 'ResourceNotFoundException'

    def test_none_event_becomes_empty_dict(self, mock_context):
        @lambda_handler
        def handler(event, context):
            return {'event': event}

        assert handler(None, mock_context)['event'] == {}
