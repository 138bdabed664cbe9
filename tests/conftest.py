"""
Shared fixtures: fake AWS credentials and a fresh config for every test.
"""
import pytest

import config

# Variables read by Config.from_env or by boto3 itself
_ISOLATED_ENV = (
    'AWS_ENDPOINT_URL',
    'LOCALSTACK_ENDPOINT',
    'IMAGES_BUCKET',
    'ORDERS_QUEUE_NAME',
    'EVENT_BUS_NAME',
    'EMAIL_SENDER',
    'PARAMETER_PREFIX',
    'SECRET_CACHE_TTL_SECONDS',
    'LOG_LEVEL',
    'AWS_PROFILE',
)


@pytest.fixture(autouse=True)
def aws_environment(monkeypatch):
    """Point boto3 at moto-friendly fake credentials and reset the config."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SECURITY_TOKEN', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')
    monkeypatch.setenv('AWS_REGION', 'us-east-1')

    # setenv first so that values written by the code under test are undone
    for name in _ISOLATED_ENV:
        monkeypatch.setenv(name, '')
        monkeypatch.delenv(name)

    config._config = None
    yield
    config._config = None


@pytest.fixture
def mock_context():
    """Mock Lambda context."""
    class MockContext:
        def __init__(self):
            self.function_name = 'test-function'
            self.memory_limit_in_mb = 128
            self.invoked_function_arn = 'arn:aws:lambda:us-east-1:123456789012:function:test'
            self.aws_request_id = 'test-request-id'

    return MockContext()
