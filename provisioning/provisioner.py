"""
Create-if-absent provisioning of a ResourceManifest against LocalStack or AWS.

Each resource is handled independently: a failure is logged, recorded on
the report, and provisioning moves on to the next resource.
"""
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

import requests

from logger_config import get_logger
from provisioning.resources import ResourceManifest
from services.dynamodb_service import DynamoDBService
from services.eventbridge_service import DEFAULT_EVENT_BUS, EventBridgeService
from services.parameter_service import ParameterService
from services.s3_service import S3Service
from services.secrets_service import SecretsService
from services.ses_service import SESService
from services.sqs_service import SQSService
from utils.exceptions import AWSServiceError, ProvisioningError, ValidationError

logger = get_logger(__name__)

HEALTH_PATH = '/_localstack/health'


@dataclass
class ProvisioningReport:
    """Outcome of a provisioning run, per resource."""
    created: List[Tuple[str, str]] = field(default_factory=list)
    skipped: List[Tuple[str, str]] = field(default_factory=list)
    failed: List[Tuple[str, str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary(self) -> Dict[str, object]:
        return {
            'created': len(self.created),
            'skipped': len(self.skipped),
            'failed': [
                {'type': kind, 'name': name, 'error': error}
                for kind, name, error in self.failed
            ],
            'ok': self.ok,
        }


def wait_for_localstack(
    endpoint: str,
    timeout: float = 60.0,
    interval: float = 2.0
) -> Dict[str, object]:
    """
    Poll the LocalStack health endpoint until it answers 200.

    Args:
        endpoint: LocalStack base URL, e.g. http://localhost:4566
        timeout: Seconds to keep trying
        interval: Seconds between attempts

    Returns:
        The decoded health document (service name -> status)

    Raises:
        ProvisioningError: If LocalStack is not healthy before the timeout
    """
    url = endpoint.rstrip('/') + HEALTH_PATH
    deadline = time.monotonic() + timeout
    last_error = 'no response'

    while True:
        try:
            response = requests.get(url, timeout=5)
            if response.status_code == 200:
                health = response.json()
                logger.info(f'LocalStack is up at {endpoint}')
                return health
            last_error = f'HTTP {response.status_code}'
        except requests.RequestException as e:
            last_error = str(e)

        if time.monotonic() >= deadline:
            raise ProvisioningError(
                f'LocalStack at {endpoint} not healthy after {timeout:.0f}s: {last_error}',
                resource_type='localstack',
                resource_name=endpoint
            )
        logger.info(f'Waiting for LocalStack at {endpoint} ({last_error})')
        time.sleep(interval)


class Provisioner:
    """Creates the resources of a manifest, skipping those that already exist."""

    def __init__(
        self,
        email_sender: str,
        event_bus_name: str = DEFAULT_EVENT_BUS,
        dynamodb_service: Optional[DynamoDBService] = None,
        secrets_service: Optional[SecretsService] = None,
        parameter_service: Optional[ParameterService] = None,
    ):
        """
        Initialize provisioner.

        Args:
            email_sender: Sender address used for the SES service
            event_bus_name: Bus the rules are attached to
        """
        self.ses_service = SESService(email_sender)
        self.eventbridge_service = EventBridgeService(event_bus_name)
        self.dynamodb_service = dynamodb_service or DynamoDBService()
        self.secrets_service = secrets_service or SecretsService(cache_ttl_seconds=0)
        self.parameter_service = parameter_service or ParameterService(prefix='/')

    def _step(
        self,
        report: ProvisioningReport,
        kind: str,
        name: str,
        action: Callable[[], bool]
    ) -> None:
        try:
            created = action()
        except (AWSServiceError, ProvisioningError, ValidationError) as e:
            logger.error(f'Failed to provision {kind} {name}: {str(e)}')
            report.failed.append((kind, name, str(e)))
            return

        if created:
            report.created.append((kind, name))
        else:
            report.skipped.append((kind, name))

    def _verify_identity(self, address: str, verified: List[str]) -> bool:
        if address in verified:
            return False
        self.ses_service.verify_email_identity(address)
        return True

    def _put_rule(self, name: str, source: str, detail_type: str, description: str) -> bool:
        # PutRule is an upsert, so a rule is always reported as created
        self.eventbridge_service.put_rule(name, source, detail_type, description)
        return True

    def provision(self, manifest: ResourceManifest) -> ProvisioningReport:
        """
        Provision every resource of ``manifest`` in dependency order.

        Returns:
            Report of created, skipped and failed resources
        """
        report = ProvisioningReport()

        for bucket in manifest.buckets:
            self._step(report, 'bucket', bucket, S3Service(bucket).create_bucket_if_absent)

        for queue in manifest.queues:
            self._step(report, 'queue', queue, SQSService(queue).create_queue_if_absent)

        if manifest.email_identities:
            try:
                verified = self.ses_service.list_verified_identities()
            except AWSServiceError as e:
                logger.warning(f'Could not list SES identities: {str(e)}')
                verified = []
            for address in manifest.email_identities:
                self._step(
                    report, 'email_identity', address,
                    lambda address=address: self._verify_identity(address, verified)
                )

        for template in manifest.email_templates:
            self._step(
                report, 'email_template', template.name,
                lambda t=template: self.ses_service.create_template_if_absent(
                    t.name, t.subject, t.text, t.html
                )
            )

        for table in manifest.tables:
            self._step(
                report, 'table', table.name,
                lambda t=table: self.dynamodb_service.create_table_if_absent(
                    t.name, t.hash_key, t.range_key, t.billing_mode
                )
            )

        for seed in manifest.seed_items:
            seed_name = f'{seed.table}:{seed.item[seed.key_attribute]["S"]}'
            self._step(
                report, 'item', seed_name,
                lambda s=seed: self.dynamodb_service.put_item_if_absent(
                    s.table, s.item, s.key_attribute
                )
            )

        for secret in manifest.secrets:
            self._step(
                report, 'secret', secret.name,
                lambda s=secret: self.secrets_service.create_secret_if_absent(
                    s.name, s.value, s.description
                )
            )

        # The default bus always exists
        if manifest.rules and self.eventbridge_service.event_bus_name != DEFAULT_EVENT_BUS:
            self._step(
                report, 'event_bus', self.eventbridge_service.event_bus_name,
                self.eventbridge_service.create_event_bus_if_absent
            )

        for rule in manifest.rules:
            self._step(
                report, 'rule', rule.name,
                lambda r=rule: self._put_rule(r.name, r.source, r.detail_type, r.description)
            )

        for parameter in manifest.parameters:
            self._step(
                report, 'parameter', parameter.name,
                lambda p=parameter: self.parameter_service.put_parameter(
                    p.name, p.value, p.param_type, p.description
                )
            )

        logger.info(
            f'Provisioning finished: {len(report.created)} created, '
            f'{len(report.skipped)} already present, {len(report.failed)} failed'
        )
        return report
