"""
Lambda handler functions for the e-commerce AWS integration layer.

Handlers are thin: they validate the incoming event and delegate to the
service layer, which talks to AWS (or LocalStack when AWS_ENDPOINT_URL
is set).
"""
from typing import Any, Dict

from config import get_config
from logger_config import get_logger
from provisioning.provisioner import Provisioner
from provisioning.resources import default_manifest
from services.eventbridge_service import EventBridgeService
from services.parameter_service import ParameterService
from services.ses_service import SESService
from utils.decorators import lambda_handler
from utils.exceptions import ValidationError

logger = get_logger(__name__)

ORDER_CONFIRMATION_TEMPLATE = 'OrderConfirmation'
NOTIFICATIONS_FLAG = 'features/enable-notifications'


def _require(event: Dict[str, Any], *fields: str) -> None:
    missing = [name for name in fields if event.get(name) in (None, '')]
    if missing:
        raise ValidationError(
            f'Missing required fields: {", ".join(missing)}', field=missing[0]
        )


@lambda_handler
def provision_resources(event, context):
    """Provision the example resources; pass {"seed": false} to skip seed items."""
    config = get_config()

    manifest = default_manifest(config)
    if event.get('seed') is False:
        manifest = manifest.without_seed_data()

    provisioner = Provisioner(
        email_sender=config.email_sender, event_bus_name=config.event_bus_name
    )
    return provisioner.provision(manifest).summary()


@lambda_handler
def publish_domain_event(event, context):
    """
    Publish an event to the configured bus.

    Expects {"source": ..., "detail_type": ..., "detail": {...}}.
    """
    _require(event, 'source', 'detail_type')
    detail = event.get('detail') or {}
    if not isinstance(detail, dict):
        raise ValidationError('detail must be an object', field='detail', value=detail)

    service = EventBridgeService(get_config().event_bus_name)
    event_id = service.publish_event(event['source'], event['detail_type'], detail)
    return {'event_id': event_id}


@lambda_handler
def send_order_confirmation(event, context):
    """
    Send the OrderConfirmation template unless notifications are disabled.

    Expects {"email": ..., "name": ..., "orderId": ..., "total": ...}.
    """
    _require(event, 'email', 'name', 'orderId', 'total')
    config = get_config()

    if not ParameterService(config.parameter_prefix).get_bool(NOTIFICATIONS_FLAG):
        logger.info(f'Notifications disabled, not emailing order {event["orderId"]}')
        return {'sent': False, 'order_id': event['orderId']}

    message_id = SESService(config.email_sender).send_templated_email(
        event['email'],
        ORDER_CONFIRMATION_TEMPLATE,
        {
            'name': event['name'],
            'orderId': event['orderId'],
            'total': event['total'],
        }
    )
    return {'sent': True, 'order_id': event['orderId'], 'message_id': message_id}


@lambda_handler
def get_feature_flags(event, context):
    """Return every parameter under <prefix>/features as a boolean flag."""
    parameters = ParameterService(get_config().parameter_prefix)
    flags = parameters.get_bools_by_path('features')
    return {
        'flags': {name.rsplit('/', 1)[-1]: value for name, value in flags.items()}
    }
