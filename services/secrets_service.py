"""
Secrets Manager service with an in-memory cache of secret strings.
"""
import json
import threading
import time
from typing import Any, Dict, Optional, Tuple

from botocore.exceptions import ClientError

from config import get_config
from logger_config import get_logger
from services.aws_clients import create_client
from utils.decorators import aws_operation, client_error_code
from utils.exceptions import SecretRetrievalError

logger = get_logger(__name__)

_SECRET_ID = {'secret_id': 'secret_id'}
_SECRET_NAME = {'secret_id': 'name'}


def _encode(value: Dict[str, Any] | str) -> str:
    return value if isinstance(value, str) else json.dumps(value)


class SecretsService:
    """
    Service for Secrets Manager operations.

    ``get_secret`` caches each SecretString for ``cache_ttl_seconds``
    (0 keeps entries until ``invalidate`` is called).
    """

    def __init__(self, cache_ttl_seconds: Optional[int] = None):
        """
        Initialize Secrets service.

        Args:
            cache_ttl_seconds: Cache lifetime; defaults to the
                SECRET_CACHE_TTL_SECONDS setting
        """
        if cache_ttl_seconds is None:
            cache_ttl_seconds = get_config().secret_cache_ttl_seconds
        self.cache_ttl_seconds = cache_ttl_seconds
        self._client = None
        self._cache: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()

    @property
    def client(self):
        """Lazy initialization of Secrets Manager client."""
        if self._client is None:
            self._client = create_client('secretsmanager')
        return self._client

    def _cached(self, secret_id: str) -> Optional[str]:
        with self._lock:
            entry = self._cache.get(secret_id)
            if entry is None:
                return None
            value, fetched_at = entry
            if self.cache_ttl_seconds and time.monotonic() - fetched_at >= self.cache_ttl_seconds:
                del self._cache[secret_id]
                return None
            return value

    def get_secret(self, secret_id: str) -> str:
        """
        Return the SecretString of ``secret_id``, served from cache when fresh.

        Args:
            secret_id: Secret name or ARN

        Returns:
            The secret string

        Raises:
            SecretRetrievalError: If the secret cannot be read or has no
                SecretString
        """
        cached = self._cached(secret_id)
        if cached is not None:
            logger.debug(f'Secret {secret_id} served from cache')
            return cached

        value = self._fetch_secret(secret_id)
        with self._lock:
            self._cache[secret_id] = (value, time.monotonic())
        return value

    @aws_operation(SecretRetrievalError, 'get_secret_value', fields=_SECRET_ID)
    def _fetch_secret(self, secret_id: str) -> str:
        response = self.client.get_secret_value(SecretId=secret_id)
        if 'SecretString' not in response:
            raise SecretRetrievalError(
                f'Secret {secret_id} has no SecretString (binary secrets are not supported)',
                secret_id=secret_id,
                operation='get_secret_value'
            )
        logger.info(f'Retrieved secret {secret_id} from Secrets Manager')
        return response['SecretString']

    def get_secret_json(self, secret_id: str) -> Dict[str, Any]:
        """
        Return the secret decoded as a JSON object.

        Raises:
            SecretRetrievalError: If the secret is not a JSON object
        """
        raw = self.get_secret(secret_id)
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise SecretRetrievalError(
                f'Secret {secret_id} is not valid JSON',
                secret_id=secret_id,
                operation='get_secret_json'
            ) from e
        if not isinstance(data, dict):
            raise SecretRetrievalError(
                f'Secret {secret_id} is not a JSON object',
                secret_id=secret_id,
                operation='get_secret_json'
            )
        return data

    def invalidate(self, secret_id: Optional[str] = None) -> None:
        """Drop one cached secret, or the whole cache when no id is given."""
        with self._lock:
            if secret_id is None:
                self._cache.clear()
            else:
                self._cache.pop(secret_id, None)

    @aws_operation(SecretRetrievalError, 'create_secret', fields=_SECRET_NAME)
    def create_secret_if_absent(
        self,
        name: str,
        value: Dict[str, Any] | str,
        description: str = ''
    ) -> bool:
        """
        Create a secret unless one with the same name exists.

        Args:
            name: Secret name, e.g. 'prod/jwt/secret'
            value: Secret string, or a dict stored as JSON
            description: Optional description

        Returns:
            True if the secret was created
        """
        params: Dict[str, Any] = {'Name': name, 'SecretString': _encode(value)}
        if description:
            params['Description'] = description

        try:
            self.client.create_secret(**params)
        except ClientError as e:
            if client_error_code(e) == 'ResourceExistsException':
                logger.info(f'Secret {name} already exists')
                return False
            raise

        logger.info(f'Created secret {name}')
        return True

    @aws_operation(SecretRetrievalError, 'put_secret_value', fields=_SECRET_ID)
    def put_secret_value(self, secret_id: str, value: Dict[str, Any] | str) -> None:
        """Store a new version of a secret and drop its cached value."""
        self.client.put_secret_value(SecretId=secret_id, SecretString=_encode(value))
        self.invalidate(secret_id)
        logger.info(f'Updated secret {secret_id}')
