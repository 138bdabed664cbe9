"""
Configuration module for environment variable validation and type-safe config.

This module validates the environment variables used by the services and
the LocalStack provisioner and provides a type-safe configuration object.
"""
import os
from dataclasses import dataclass
from typing import Optional


DEFAULT_LOCALSTACK_ENDPOINT = "http://localhost:4566"


def _validate_url(name: str, value: str) -> str:
    if not value.startswith(("http://", "https://")):
        raise ValueError(
            f"{name} must start with http:// or https://, got: {value}"
        )
    return value.rstrip("/")


@dataclass
class Config:
    """Type-safe configuration object with validated environment variables."""

    aws_region: str = "us-east-1"
    aws_endpoint_url: Optional[str] = None
    localstack_endpoint: str = DEFAULT_LOCALSTACK_ENDPOINT
    images_bucket: str = "products-images"
    orders_queue_name: str = "orders-queue"
    event_bus_name: str = "default"
    email_sender: str = "noreply@ecommerce.com"
    parameter_prefix: str = "/app"
    secret_cache_ttl_seconds: int = 300
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Config":
        """
        Create Config instance from environment variables.

        Raises:
            ValueError: If environment variables are invalid.
        """
        aws_region = os.environ.get("AWS_REGION", "us-east-1")
        if not aws_region:
            raise ValueError("AWS_REGION environment variable must not be empty")

        aws_endpoint_url = os.environ.get("AWS_ENDPOINT_URL") or None
        if aws_endpoint_url:
            aws_endpoint_url = _validate_url("AWS_ENDPOINT_URL", aws_endpoint_url)

        localstack_endpoint = _validate_url(
            "LOCALSTACK_ENDPOINT",
            os.environ.get("LOCALSTACK_ENDPOINT", DEFAULT_LOCALSTACK_ENDPOINT),
        )

        email_sender = os.environ.get("EMAIL_SENDER", "noreply@ecommerce.com")
        if "@" not in email_sender:
            raise ValueError(
                f"EMAIL_SENDER must be an email address, got: {email_sender}"
            )

        parameter_prefix = os.environ.get("PARAMETER_PREFIX", "/app")
        if not parameter_prefix.startswith("/"):
            raise ValueError(
                f"PARAMETER_PREFIX must start with '/', got: {parameter_prefix}"
            )

        raw_ttl = os.environ.get("SECRET_CACHE_TTL_SECONDS", "300")
        try:
            secret_cache_ttl_seconds = int(raw_ttl)
        except ValueError:
            raise ValueError(
                f"SECRET_CACHE_TTL_SECONDS must be an integer, got: {raw_ttl}"
            ) from None
        if secret_cache_ttl_seconds < 0:
            raise ValueError(
                f"SECRET_CACHE_TTL_SECONDS must be >= 0, got: {secret_cache_ttl_seconds}"
            )

        log_level = os.environ.get("LOG_LEVEL", "INFO").upper()

        # Validate log level
        valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if log_level not in valid_log_levels:
            raise ValueError(
                f"LOG_LEVEL must be one of {valid_log_levels}, got: {log_level}"
            )

        return cls(
            aws_region=aws_region,
            aws_endpoint_url=aws_endpoint_url,
            localstack_endpoint=localstack_endpoint,
            images_bucket=os.environ.get("IMAGES_BUCKET", "products-images"),
            orders_queue_name=os.environ.get("ORDERS_QUEUE_NAME", "orders-queue"),
            event_bus_name=os.environ.get("EVENT_BUS_NAME", "default"),
            email_sender=email_sender,
            parameter_prefix=parameter_prefix.rstrip("/") or "/",
            secret_cache_ttl_seconds=secret_cache_ttl_seconds,
            log_level=log_level,
        )


# Global config instance, built lazily on first access
_config: Optional[Config] = None


def get_config() -> Config:
    """
    Get the global configuration instance.

    Returns:
        Config: The validated configuration object

    Raises:
        ValueError: If environment variables are invalid.
    """
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config
