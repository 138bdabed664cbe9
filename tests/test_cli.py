"""
Tests for the setup_localstack command line.
"""
import os
from unittest.mock import patch

from typer.testing import CliRunner

from provisioning.provisioner import ProvisioningReport
from setup_localstack import app
from utils.exceptions import ProvisioningError

runner = CliRunner()


@patch('setup_localstack.wait_for_localstack')
@patch('setup_localstack.Provisioner')
def test_provisions_against_endpoint(mock_provisioner_class, mock_wait):
    mock_provisioner_class.return_value.provision.return_value = ProvisioningReport(
        created=[('bucket', 'products-images')], skipped=[('queue', 'orders-queue')]
    )

    result = runner.invoke(app, ['--endpoint-url', 'http://localstack:4566/'])

    assert result.exit_code == 0
    assert '1 created, 1 already present, 0 failed' in result.output
    assert 'http://localhost:8001' in result.output
    assert os.environ['AWS_ENDPOINT_URL'] == 'http://localstack:4566'
    mock_wait.assert_called_once_with('http://localstack:4566', timeout=60.0)

    manifest = mock_provisioner_class.return_value.provision.call_args.args[0]
    assert len(manifest.seed_items) == 2


@patch('setup_localstack.wait_for_localstack')
@patch('setup_localstack.Provisioner')
def test_no_seed_and_no_wait(mock_provisioner_class, mock_wait):
    mock_provisioner_class.return_value.provision.return_value = ProvisioningReport()

    result = runner.invoke(app, ['--no-seed', '--no-wait', '--region', 'eu-west-1'])

    assert result.exit_code == 0
    mock_wait.assert_not_called()
    assert os.environ['AWS_REGION'] == 'eu-west-1'
    manifest = mock_provisioner_class.return_value.provision.call_args.args[0]
    assert manifest.seed_items == ()


@patch('setup_localstack.wait_for_localstack')
@patch('setup_localstack.Provisioner')
def test_failures_exit_non_zero(mock_provisioner_class, mock_wait):
    mock_provisioner_class.return_value.provision.return_value = ProvisioningReport(
        failed=[('secret', 'prod/jwt/secret', 'AccessDenied')]
    )

    result = runner.invoke(app, ['--no-wait'])

    assert result.exit_code == 1
    assert 'FAILED secret prod/jwt/secret' in result.output


@patch('setup_localstack.wait_for_localstack')
@patch('setup_localstack.Provisioner')
def test_localstack_not_reachable(mock_provisioner_class, mock_wait):
    mock_wait.side_effect = ProvisioningError('LocalStack not healthy', resource_type='localstack')

    result = runner.invoke(app, [])

    assert result.exit_code == 1
    mock_provisioner_class.assert_not_called()


def test_invalid_endpoint_rejected():
    result = runner.invoke(app, ['--endpoint-url', 'localhost:4566', '--no-wait'])

    assert result.exit_code == 2


@patch('setup_localstack.Provisioner')
def test_invalid_log_level_rejected(mock_provisioner_class):
    result = runner.invoke(app, ['--log-level', 'basic_format', '--no-wait'])

    assert result.exit_code == 2
    assert 'Invalid --log-level' in result.output
    mock_provisioner_class.assert_not_called()
