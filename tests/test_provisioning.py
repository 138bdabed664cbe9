"""
Tests for the LocalStack resource manifest and provisioner.
"""
import json
from unittest.mock import Mock, patch

import boto3
import pytest
import requests
from moto import mock_aws

from config import Config, get_config
from provisioning.provisioner import Provisioner, ProvisioningReport, wait_for_localstack
from provisioning.resources import ResourceManifest, TableSpec, default_manifest
from utils.exceptions import ProvisioningError

REGION = 'us-east-1'


class TestDefaultManifest:
    """Tests for default_manifest."""

    def test_example_resources(self):
        manifest = default_manifest(Config())

        assert manifest.buckets == ('products-images',)
        assert manifest.queues == ('orders-queue',)
        assert manifest.email_identities == ('noreply@ecommerce.com', 'admin@ecommerce.com')
        assert [t.name for t in manifest.email_templates] == [
            'OrderConfirmation', 'WelcomeEmail', 'PasswordReset'
        ]
        assert [t.name for t in manifest.tables] == [
            'user-sessions', 'authentications', 'auth-tokens'
        ]
        assert [s.name for s in manifest.secrets] == [
            'prod/database/credentials', 'prod/stripe/api-keys',
            'prod/jwt/secret', 'prod/aws/credentials',
        ]
        assert [(r.source, r.detail_type) for r in manifest.rules] == [
            ('orders.service', 'OrderCreated'),
            ('payments.service', 'PaymentCompleted'),
            ('auth.service', 'UserRegistered'),
        ]
        assert len(manifest.seed_items) == 2
        assert len(manifest.parameters) == 8

    def test_templates_keep_placeholders(self):
        templates = {t.name: t for t in default_manifest(Config()).email_templates}

        assert '{{orderId}}' in templates['OrderConfirmation'].subject
        assert '{{total}}' in templates['OrderConfirmation'].html
        assert '{{resetUrl}}' in templates['PasswordReset'].text

    def test_configured_names_flow_into_manifest(self):
        config = Config(
            images_bucket='images-dev',
            email_sender='admin@ecommerce.com',
            parameter_prefix='/shop',
        )
        manifest = default_manifest(config)

        assert manifest.buckets == ('images-dev',)
        # Sender and admin identities collapse when they are the same address
        assert manifest.email_identities == ('admin@ecommerce.com',)
        parameters = {p.name: p for p in manifest.parameters}
        assert parameters['/shop/s3/images-bucket'].value == 'images-dev'
        assert parameters['/shop/config/admin-email'].param_type == 'SecureString'

    def test_without_seed_data(self):
        manifest = default_manifest(Config()).without_seed_data()

        assert manifest.seed_items == ()
        assert len(manifest.tables) == 3


@pytest.mark.provisioning
@mock_aws()
def test_provision_default_manifest():
    config = get_config()
    provisioner = Provisioner(config.email_sender)

    report = provisioner.provision(default_manifest(config))

    assert report.ok
    assert report.skipped == []
    assert ('bucket', 'products-images') in report.created
    assert ('item', 'authentications:victor@example.com') in report.created

    s3 = boto3.client('s3', region_name=REGION)
    assert [b['Name'] for b in s3.list_buckets()['Buckets']] == ['products-images']

    sqs = boto3.client('sqs', region_name=REGION)
    assert sqs.get_queue_url(QueueName='orders-queue')['QueueUrl']

    dynamodb = boto3.client('dynamodb', region_name=REGION)
    assert sorted(dynamodb.list_tables()['TableNames']) == [
        'auth-tokens', 'authentications', 'user-sessions'
    ]
    admin = dynamodb.get_item(
        TableName='authentications', Key={'email': {'S': 'admin@ecommerce.com'}}
    )['Item']
    assert admin['userId']['S'] == 'b2c3d4e5-f6a7-8901-bcde-f12345678901'

    ses = boto3.client('ses', region_name=REGION)
    assert sorted(ses.list_identities(IdentityType='EmailAddress')['Identities']) == [
        'admin@ecommerce.com', 'noreply@ecommerce.com'
    ]
    template = ses.get_template(TemplateName='OrderConfirmation')['Template']
    assert template['SubjectPart'] == 'Order #{{orderId}} confirmed'

    secrets = boto3.client('secretsmanager', region_name=REGION)
    stripe = json.loads(secrets.get_secret_value(SecretId='prod/stripe/api-keys')['SecretString'])
    assert stripe['apiKey'] == 'sk_test_1234567890'

    events = boto3.client('events', region_name=REGION)
    assert sorted(r['Name'] for r in events.list_rules()['Rules']) == [
        'order-created-rule', 'payment-completed-rule', 'user-registered-rule'
    ]

    ssm = boto3.client('ssm', region_name=REGION)
    admin_email = ssm.get_parameter(Name='/app/config/admin-email', WithDecryption=True)
    assert admin_email['Parameter']['Type'] == 'SecureString'
    assert admin_email['Parameter']['Value'] == 'admin@ecommerce.com'


@pytest.mark.provisioning
@mock_aws()
def test_provision_is_idempotent():
    config = get_config()
    manifest = default_manifest(config)

    first = Provisioner(config.email_sender).provision(manifest)
    second = Provisioner(config.email_sender).provision(manifest)

    assert first.ok and second.ok
    # Rules are upserts and always count as created
    assert [kind for kind, _ in second.created] == ['rule', 'rule', 'rule']
    assert len(second.skipped) == len(first.created) - 3


@pytest.mark.provisioning
@mock_aws()
def test_provision_custom_event_bus(monkeypatch):
    monkeypatch.setenv('EVENT_BUS_NAME', 'shop-bus')
    config = get_config()
    manifest = default_manifest(config)

    first = Provisioner(config.email_sender, config.event_bus_name).provision(manifest)
    second = Provisioner(config.email_sender, config.event_bus_name).provision(manifest)

    assert first.ok, first.failed
    assert ('event_bus', 'shop-bus') in first.created
    assert ('event_bus', 'shop-bus') in second.skipped

    events = boto3.client('events', region_name=REGION)
    rules = events.list_rules(EventBusName='shop-bus')['Rules']
    assert sorted(r['Name'] for r in rules) == [
        'order-created-rule', 'payment-completed-rule', 'user-registered-rule'
    ]


@pytest.mark.provisioning
@mock_aws()
def test_provision_existing_resources_untouched():
    config = get_config()
    ssm = boto3.client('ssm', region_name=REGION)
    ssm.put_parameter(Name='/app/limits/max-items-per-order', Value='10', Type='String')

    report = Provisioner(config.email_sender).provision(default_manifest(config))

    assert ('parameter', '/app/limits/max-items-per-order') in report.skipped
    value = ssm.get_parameter(Name='/app/limits/max-items-per-order')['Parameter']['Value']
    assert value == '10'


@pytest.mark.provisioning
@mock_aws()
def test_provision_continues_after_failure():
    manifest = ResourceManifest(
        tables=(
            TableSpec('broken', ''),
            TableSpec('user-sessions', 'userId'),
        ),
        queues=('orders-queue',),
    )

    report = Provisioner('noreply@ecommerce.com').provision(manifest)

    assert not report.ok
    assert [(kind, name) for kind, name, _ in report.failed] == [('table', 'broken')]
    assert ('table', 'user-sessions') in report.created
    assert ('queue', 'orders-queue') in report.created
    assert report.summary()['failed'][0]['name'] == 'broken'


class TestProvisioningReport:
    def test_summary(self):
        report = ProvisioningReport(
            created=[('bucket', 'products-images')],
            skipped=[('queue', 'orders-queue')],
        )

        assert report.summary() == {'created': 1, 'skipped': 1, 'failed': [], 'ok': True}


class TestWaitForLocalstack:
    """Tests for wait_for_localstack."""

    @patch('provisioning.provisioner.time.sleep')
    @patch('provisioning.provisioner.requests.get')
    def test_returns_health_when_up(self, mock_get, mock_sleep):
        unhealthy = Mock(status_code=503)
        healthy = Mock(status_code=200)
        healthy.json.return_value = {'services': {'s3': 'running'}}
        mock_get.side_effect = [requests.ConnectionError('refused'), unhealthy, healthy]

        health = wait_for_localstack('http://localhost:4566/', timeout=60, interval=0.1)

        assert health == {'services': {'s3': 'running'}}
        assert mock_get.call_args.args[0] == 'http://localhost:4566/_localstack/health'
        assert mock_sleep.call_count == 2

    @patch('provisioning.provisioner.time.sleep')
    @patch('provisioning.provisioner.requests.get')
    def test_times_out(self, mock_get, mock_sleep):
        mock_get.side_effect = requests.ConnectionError('refused')

        with pytest.raises(ProvisioningError) as exc_info:
            wait_for_localstack('http://localhost:4566', timeout=0)

        assert exc_info.value.resource_type == 'localstack'
        assert 'refused' in str(exc_info.value)
