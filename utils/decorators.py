"""
Decorators for AWS error translation, logging, and handler response formatting.
"""
import functools
import inspect
import uuid
import traceback
from typing import Callable, Any, Dict, Optional, Type

from botocore.exceptions import BotoCoreError, ClientError

from logger_config import get_logger
from utils.exceptions import AWSServiceError, ValidationError

logger = get_logger(__name__)


def client_error_code(error: Exception) -> Optional[str]:
    """Return the AWS error code of a ClientError, or None for anything else."""
    if isinstance(error, ClientError):
        return error.response.get('Error', {}).get('Code')
    return None


def aws_operation(
    error_cls: Type[AWSServiceError],
    operation: str,
    fields: Optional[Dict[str, str]] = None,
    instance_fields: Optional[Dict[str, str]] = None
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Log and rethrow SDK failures of a service method as ``error_cls``.

    Args:
        error_cls: Exception class raised in place of the SDK error
        operation: Operation name recorded on the error and in the log line
        fields: Error kwarg -> method parameter name, e.g. {'key': 'key'}
        instance_fields: Error kwarg -> attribute of ``self``,
            e.g. {'bucket': 'bucket_name'}

    Returns:
        Decorator for a service method
    """
    fields = fields or {}
    instance_fields = instance_fields or {}

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(self, *args: Any, **kwargs: Any) -> Any:
            try:
                return func(self, *args, **kwargs)
            except (ClientError, BotoCoreError) as e:
                bound = signature.bind_partial(self, *args, **kwargs).arguments
                context = {
                    field: bound.get(param) for field, param in fields.items()
                }
                context.update({
                    field: getattr(self, attr, None)
                    for field, attr in instance_fields.items()
                })
                error_code = client_error_code(e)

                logger.error(
                    f'{error_cls.__name__} in {operation} '
                    f'({error_code or type(e).__name__}): {str(e)}'
                )
                raise error_cls(
                    f'{operation} failed: {str(e)}',
                    operation=operation,
                    error_code=error_code,
                    **context
                ) from e

        return wrapper

    return decorator


def lambda_handler(
    func: Callable[[Any, Any], Any]
) -> Callable[[Any, Any], Dict[str, Any]]:
    """
    Decorator for Lambda handler functions.

    Provides:
    - Request correlation IDs for logging
    - Structured error responses
    - Response formatting

    Args:
        func: The handler function to decorate

    Returns:
        Decorated handler function
    """
    @functools.wraps(func)
    def wrapper(event: Any, context: Any) -> Dict[str, Any]:
        correlation_id = str(uuid.uuid4())

        logger.info(
            f"Handler {func.__name__} invoked",
            extra={
                "correlation_id": correlation_id,
                "handler": func.__name__,
                "request_id": getattr(context, "aws_request_id", None) if context else None
            }
        )

        try:
            result = func(event or {}, context)

            if not isinstance(result, dict):
                if isinstance(result, (list, str)):
                    result = {"result": result}
                else:
                    result = {"data": result}

            result.setdefault("metadata", {})
            result["metadata"]["correlation_id"] = correlation_id

            logger.info(
                f"Handler {func.__name__} completed successfully",
                extra={"correlation_id": correlation_id}
            )

            return result

        except (ValueError, ValidationError) as e:
            logger.warning(
                f"Handler {func.__name__} validation error: {str(e)}",
                extra={"correlation_id": correlation_id}
            )
            return _error_response("ValidationError", e, correlation_id, func.__name__)

        except Exception as e:
            logger.error(
                f"Handler {func.__name__} failed: {str(e)}",
                extra={
                    "correlation_id": correlation_id,
                    "traceback": traceback.format_exc()
                },
                exc_info=True
            )
            response = _error_response(type(e).__name__, e, correlation_id, func.__name__)
            if isinstance(e, AWSServiceError):
                response["error"]["service"] = e.service
                response["error"]["error_code"] = e.error_code
            return response

    return wrapper


def _error_response(
    error_type: str,
    error: Exception,
    correlation_id: str,
    handler_name: str
) -> Dict[str, Any]:
    return {
        "error": {
            "type": error_type,
            "message": str(error),
            "correlation_id": correlation_id
        },
        "metadata": {
            "correlation_id": correlation_id,
            "handler": handler_name
        }
    }
