"""
EventBridge service for publishing domain events and managing rules.
"""
import json
from typing import Any, Dict, Iterable, List, Optional, Tuple

from botocore.exceptions import ClientError

from logger_config import get_logger
from services.aws_clients import create_client
from utils.decorators import aws_operation, client_error_code
from utils.exceptions import EventPublishError, ValidationError

logger = get_logger(__name__)

# PutEvents accepts at most 10 entries per request
MAX_ENTRIES_PER_REQUEST = 10

DEFAULT_EVENT_BUS = 'default'

EventEntry = Tuple[str, str, Dict[str, Any]]


def build_event_pattern(source: str, detail_type: str) -> Dict[str, List[str]]:
    """Event pattern matching a single source and detail-type."""
    return {'source': [source], 'detail-type': [detail_type]}


class EventBridgeService:
    """Service for EventBridge operations on a single event bus."""

    def __init__(self, event_bus_name: str = DEFAULT_EVENT_BUS):
        """
        Initialize EventBridge service.

        Args:
            event_bus_name: Name of the target event bus
        """
        self.event_bus_name = event_bus_name
        self._client = None

    @property
    def client(self):
        """Lazy initialization of EventBridge client."""
        if self._client is None:
            self._client = create_client('events')
        return self._client

    def _entry(self, source: str, detail_type: str, detail: Dict[str, Any]) -> Dict[str, str]:
        if not source:
            raise ValidationError('Event source is required', field='source', value=source)
        if not detail_type:
            raise ValidationError(
                'Event detail-type is required', field='detail_type', value=detail_type
            )
        return {
            'Source': source,
            'DetailType': detail_type,
            'Detail': json.dumps(detail),
            'EventBusName': self.event_bus_name,
        }

    def publish_event(self, source: str, detail_type: str, detail: Dict[str, Any]) -> str:
        """
        Publish one event.

        Args:
            source: Event source, e.g. 'orders.service'
            detail_type: Event detail-type, e.g. 'OrderCreated'
            detail: JSON-serializable event payload

        Returns:
            The EventBridge event id

        Raises:
            ValidationError: If source or detail_type is empty
            EventPublishError: If the call fails or the entry is rejected
        """
        return self._put_entries([self._entry(source, detail_type, detail)])[0]

    def publish_events(self, entries: Iterable[EventEntry]) -> List[str]:
        """
        Publish several events, at most 10 per PutEvents request.

        Args:
            entries: (source, detail_type, detail) tuples

        Returns:
            Event ids in input order

        Raises:
            EventPublishError: If a request fails. Chunks sent before the
                failing one are not rolled back; their ids are on the
                error as ``published_event_ids``.
        """
        request_entries = [self._entry(*entry) for entry in entries]
        event_ids: List[str] = []
        for start in range(0, len(request_entries), MAX_ENTRIES_PER_REQUEST):
            try:
                event_ids.extend(
                    self._put_entries(request_entries[start:start + MAX_ENTRIES_PER_REQUEST])
                )
            except EventPublishError as e:
                e.published_event_ids = list(event_ids)
                raise
        return event_ids

    @aws_operation(EventPublishError, 'put_events')
    def _put_entries(self, entries: List[Dict[str, str]]) -> List[str]:
        response = self.client.put_events(Entries=entries)

        if response.get('FailedEntryCount', 0):
            failed = [
                result for result in response.get('Entries', []) if result.get('ErrorCode')
            ]
            logger.error(
                f'EventBridge rejected {response["FailedEntryCount"]} of '
                f'{len(entries)} events on bus {self.event_bus_name}: {failed}'
            )
            raise EventPublishError(
                f'{response["FailedEntryCount"]} events were rejected',
                failed_entries=failed,
                operation='put_events',
                error_code=failed[0].get('ErrorCode') if failed else None
            )

        event_ids = [result['EventId'] for result in response.get('Entries', [])]
        for entry, event_id in zip(entries, event_ids):
            logger.info(
                f'Published {entry["DetailType"]} from {entry["Source"]} '
                f'to bus {self.event_bus_name} (event id: {event_id})'
            )
        return event_ids

    @aws_operation(EventPublishError, 'create_event_bus')
    def create_event_bus_if_absent(self) -> bool:
        """
        Create the event bus unless it already exists.

        The default bus always exists and is never created.

        Returns:
            True if the bus was created, False otherwise
        """
        if self.event_bus_name == DEFAULT_EVENT_BUS:
            return False

        try:
            self.client.describe_event_bus(Name=self.event_bus_name)
            logger.info(f'Event bus {self.event_bus_name} already exists')
            return False
        except ClientError as e:
            if client_error_code(e) != 'ResourceNotFoundException':
                raise

        self.client.create_event_bus(Name=self.event_bus_name)
        logger.info(f'Created event bus {self.event_bus_name}')
        return True

    @aws_operation(EventPublishError, 'put_rule')
    def put_rule(
        self,
        name: str,
        source: str,
        detail_type: str,
        description: str = ''
    ) -> str:
        """
        Create or update a rule matching ``source`` and ``detail_type``.

        Returns:
            The rule ARN
        """
        params: Dict[str, Any] = {
            'Name': name,
            'EventPattern': json.dumps(build_event_pattern(source, detail_type)),
            'EventBusName': self.event_bus_name,
            'State': 'ENABLED',
        }
        if description:
            params['Description'] = description

        response = self.client.put_rule(**params)
        logger.info(f'Put rule {name} on bus {self.event_bus_name}')
        return response['RuleArn']

    @aws_operation(EventPublishError, 'put_targets')
    def add_target(self, rule_name: str, target_id: str, arn: str) -> None:
        """Attach a target (queue, function, ...) to an existing rule."""
        response = self.client.put_targets(
            Rule=rule_name,
            EventBusName=self.event_bus_name,
            Targets=[{'Id': target_id, 'Arn': arn}]
        )
        if response.get('FailedEntryCount', 0):
            raise EventPublishError(
                f'Target {target_id} was rejected for rule {rule_name}',
                failed_entries=response.get('FailedEntries', []),
                operation='put_targets'
            )
        logger.info(f'Added target {target_id} to rule {rule_name}')

    @aws_operation(EventPublishError, 'list_rules')
    def list_rules(self, prefix: Optional[str] = None) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {'EventBusName': self.event_bus_name}
        if prefix:
            params['NamePrefix'] = prefix

        rules: List[Dict[str, Any]] = []
        while True:
            response = self.client.list_rules(**params)
            rules.extend(response.get('Rules', []))
            if not response.get('NextToken'):
                return rules
            params['NextToken'] = response['NextToken']
