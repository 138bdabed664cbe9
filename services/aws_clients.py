"""
boto3 client factory honouring the configured region and endpoint override.
"""
from typing import Any, Dict, Optional

import boto3

from config import Config, get_config


def client_kwargs(config: Optional[Config] = None) -> Dict[str, Any]:
    """
    Build the keyword arguments shared by every client.

    ``endpoint_url`` is only passed when configured, so the SDK keeps its
    normal endpoint resolution against real AWS.
    """
    config = config or get_config()
    kwargs: Dict[str, Any] = {'region_name': config.aws_region}
    if config.aws_endpoint_url:
        kwargs['endpoint_url'] = config.aws_endpoint_url
    return kwargs


def create_client(service_name: str, config: Optional[Config] = None) -> Any:
    """Create a boto3 client for ``service_name``."""
    return boto3.client(service_name, **client_kwargs(config))


def create_resource(service_name: str, config: Optional[Config] = None) -> Any:
    """Create a boto3 resource for ``service_name``."""
    return boto3.resource(service_name, **client_kwargs(config))
