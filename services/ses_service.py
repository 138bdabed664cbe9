"""
SES service for transactional email.
"""
import json
from typing import Any, Dict, List, Optional

from logger_config import get_logger
from services.aws_clients import create_client
from utils.decorators import aws_operation
from utils.exceptions import EmailDeliveryError, ValidationError

logger = get_logger(__name__)

_RECIPIENTS = {'recipients': 'to'}


def _as_list(addresses: str | List[str]) -> List[str]:
    recipients = [addresses] if isinstance(addresses, str) else list(addresses)
    if not recipients:
        raise ValidationError('At least one recipient is required', field='to', value=addresses)
    return recipients


class SESService:
    """Service for sending email through SES from a fixed sender address."""

    def __init__(self, sender: str):
        """
        Initialize SES service.

        Args:
            sender: Verified "From" address
        """
        self.sender = sender
        self._client = None

    @property
    def client(self):
        """Lazy initialization of SES client."""
        if self._client is None:
            self._client = create_client('ses')
        return self._client

    @aws_operation(EmailDeliveryError, 'send_email', fields=_RECIPIENTS)
    def send_email(
        self,
        to: str | List[str],
        subject: str,
        html_body: Optional[str] = None,
        text_body: Optional[str] = None
    ) -> str:
        """
        Send a plain email.

        Args:
            to: Recipient address or list of addresses
            subject: Subject line
            html_body: HTML body
            text_body: Plain-text body

        Returns:
            The SES message id

        Raises:
            ValidationError: If no body or no recipient is given
            EmailDeliveryError: If SES rejects the message
        """
        if html_body is None and text_body is None:
            raise ValidationError('Either html_body or text_body is required', field='body')

        body: Dict[str, Dict[str, str]] = {}
        if html_body is not None:
            body['Html'] = {'Data': html_body, 'Charset': 'UTF-8'}
        if text_body is not None:
            body['Text'] = {'Data': text_body, 'Charset': 'UTF-8'}

        recipients = _as_list(to)
        response = self.client.send_email(
            Source=self.sender,
            Destination={'ToAddresses': recipients},
            Message={
                'Subject': {'Data': subject, 'Charset': 'UTF-8'},
                'Body': body,
            }
        )
        logger.info(f'Sent email "{subject}" to {", ".join(recipients)}')
        return response['MessageId']

    @aws_operation(EmailDeliveryError, 'send_templated_email', fields=_RECIPIENTS)
    def send_templated_email(
        self,
        to: str | List[str],
        template_name: str,
        template_data: Dict[str, Any]
    ) -> str:
        """
        Send an email rendered by SES from a stored template.

        Args:
            to: Recipient address or list of addresses
            template_name: Name of an existing SES template
            template_data: Values for the template's {{placeholders}}

        Returns:
            The SES message id
        """
        recipients = _as_list(to)
        response = self.client.send_templated_email(
            Source=self.sender,
            Destination={'ToAddresses': recipients},
            Template=template_name,
            TemplateData=json.dumps(template_data)
        )
        logger.info(f'Sent {template_name} email to {", ".join(recipients)}')
        return response['MessageId']

    @aws_operation(EmailDeliveryError, 'verify_email_identity')
    def verify_email_identity(self, address: str) -> None:
        self.client.verify_email_identity(EmailAddress=address)
        logger.info(f'Requested verification of {address}')

    @aws_operation(EmailDeliveryError, 'list_identities')
    def list_verified_identities(self) -> List[str]:
        identities: List[str] = []
        params: Dict[str, Any] = {'IdentityType': 'EmailAddress'}
        while True:
            response = self.client.list_identities(**params)
            identities.extend(response.get('Identities', []))
            if not response.get('NextToken'):
                return identities
            params['NextToken'] = response['NextToken']

    @aws_operation(EmailDeliveryError, 'list_templates')
    def list_template_names(self) -> List[str]:
        names: List[str] = []
        params: Dict[str, Any] = {}
        while True:
            response = self.client.list_templates(**params)
            names.extend(t['Name'] for t in response.get('TemplatesMetadata', []))
            if not response.get('NextToken'):
                return names
            params['NextToken'] = response['NextToken']

    @aws_operation(EmailDeliveryError, 'create_template')
    def create_template_if_absent(
        self,
        name: str,
        subject: str,
        text: str,
        html: str
    ) -> bool:
        """
        Store an email template unless one with the same name exists.

        Existing templates are left untouched.

        Returns:
            True if the template was created
        """
        if name in self.list_template_names():
            logger.info(f'Email template {name} already exists')
            return False

        self.client.create_template(
            Template={
                'TemplateName': name,
                'SubjectPart': subject,
                'TextPart': text,
                'HtmlPart': html,
            }
        )
        logger.info(f'Created email template {name}')
        return True
