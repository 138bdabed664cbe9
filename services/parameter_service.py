"""
SSM Parameter Store service for application settings and feature flags.
"""
from typing import Any, Dict, List, Optional

from botocore.exceptions import ClientError

from config import get_config
from logger_config import get_logger
from services.aws_clients import create_client
from utils.decorators import aws_operation, client_error_code
from utils.exceptions import ParameterRetrievalError, ValidationError

logger = get_logger(__name__)

PARAMETER_TYPES = ('String', 'StringList', 'SecureString')
TRUE_VALUES = {'true', '1', 'yes', 'on'}
FALSE_VALUES = {'false', '0', 'no', 'off'}

_NAME = {'parameter_name': 'name'}


class ParameterService:
    """Service for Parameter Store operations under a name prefix."""

    def __init__(self, prefix: Optional[str] = None):
        """
        Initialize Parameter service.

        Args:
            prefix: Hierarchy root used for relative names (e.g. '/app');
                defaults to the PARAMETER_PREFIX setting
        """
        self.prefix = (prefix if prefix is not None else get_config().parameter_prefix).rstrip('/')
        self._client = None

    @property
    def client(self):
        """Lazy initialization of SSM client."""
        if self._client is None:
            self._client = create_client('ssm')
        return self._client

    def resolve_name(self, name: str) -> str:
        """
        Resolve ``name`` against the prefix.

        Absolute names ('/app/api/base-url') are returned unchanged; relative
        names ('api/base-url') are placed under the prefix.
        """
        if name.startswith('/'):
            return name
        return f'{self.prefix}/{name}'

    def get_parameter(self, name: str, decrypt: bool = True) -> str:
        """
        Read a parameter value.

        Args:
            name: Absolute or prefix-relative parameter name
            decrypt: Decrypt SecureString values

        Returns:
            The parameter value as stored

        Raises:
            ParameterRetrievalError: If the parameter is missing or unreadable
        """
        return self._get_parameter(self.resolve_name(name), decrypt)

    @aws_operation(ParameterRetrievalError, 'get_parameter', fields=_NAME)
    def _get_parameter(self, name: str, decrypt: bool) -> str:
        response = self.client.get_parameter(Name=name, WithDecryption=decrypt)
        logger.debug(f'Read parameter {name}')
        return response['Parameter']['Value']

    @aws_operation(ParameterRetrievalError, 'get_parameters_by_path')
    def get_parameters_by_path(
        self,
        path: Optional[str] = None,
        recursive: bool = True
    ) -> Dict[str, str]:
        """
        Read every parameter below ``path`` (the prefix by default).

        Returns:
            Mapping of full parameter name to decrypted value
        """
        path = self.resolve_name(path) if path else (self.prefix or '/')
        paginator = self.client.get_paginator('get_parameters_by_path')
        values: Dict[str, str] = {}
        for page in paginator.paginate(Path=path, Recursive=recursive, WithDecryption=True):
            for parameter in page.get('Parameters', []):
                values[parameter['Name']] = parameter['Value']
        logger.info(f'Read {len(values)} parameters under {path}')
        return values

    def _to_bool(self, name: str, value: str) -> bool:
        normalized = value.strip().lower()
        if normalized in TRUE_VALUES:
            return True
        if normalized in FALSE_VALUES:
            return False
        raise self._conversion_error(name, value, 'boolean')

    def get_bool(self, name: str) -> bool:
        return self._to_bool(name, self.get_parameter(name))

    def get_bools_by_path(self, path: Optional[str] = None) -> Dict[str, bool]:
        """
        Read every parameter under ``path`` as a boolean flag.

        Raises:
            ParameterRetrievalError: If any value is not a recognised boolean
        """
        return {
            name: self._to_bool(name, value)
            for name, value in self.get_parameters_by_path(path).items()
        }

    def get_int(self, name: str) -> int:
        value = self.get_parameter(name)
        try:
            return int(value)
        except ValueError:
            raise self._conversion_error(name, value, 'integer') from None

    def get_float(self, name: str) -> float:
        value = self.get_parameter(name)
        try:
            return float(value)
        except ValueError:
            raise self._conversion_error(name, value, 'number') from None

    def get_list(self, name: str) -> List[str]:
        """Read a StringList (or comma-separated String) parameter."""
        value = self.get_parameter(name)
        return [item.strip() for item in value.split(',') if item.strip()]

    def _conversion_error(self, name: str, value: str, kind: str) -> ParameterRetrievalError:
        return ParameterRetrievalError(
            f'Parameter {self.resolve_name(name)} is not a valid {kind}: {value!r}',
            parameter_name=self.resolve_name(name),
            operation='convert'
        )

    def put_parameter(
        self,
        name: str,
        value: Any,
        param_type: str = 'String',
        description: str = '',
        overwrite: bool = False
    ) -> bool:
        """
        Write a parameter.

        Args:
            name: Absolute or prefix-relative parameter name
            value: Value; lists are joined with commas for StringList
            param_type: String, StringList or SecureString
            description: Optional description
            overwrite: Replace an existing value

        Returns:
            True if written, False if it existed and overwrite is False
        """
        if param_type not in PARAMETER_TYPES:
            raise ValidationError(
                f'param_type must be one of {PARAMETER_TYPES}',
                field='param_type',
                value=param_type
            )
        if isinstance(value, (list, tuple)):
            value = ','.join(str(item) for item in value)
        return self._put_parameter(
            self.resolve_name(name), str(value), param_type, description, overwrite
        )

    @aws_operation(ParameterRetrievalError, 'put_parameter', fields=_NAME)
    def _put_parameter(
        self,
        name: str,
        value: str,
        param_type: str,
        description: str,
        overwrite: bool
    ) -> bool:
        params: Dict[str, Any] = {
            'Name': name,
            'Value': value,
            'Type': param_type,
            'Overwrite': overwrite,
        }
        if description:
            params['Description'] = description

        try:
            self.client.put_parameter(**params)
        except ClientError as e:
            if client_error_code(e) == 'ParameterAlreadyExists':
                logger.info(f'Parameter {name} already exists')
                return False
            raise

        logger.info(f'Put {param_type} parameter {name}')
        return True
