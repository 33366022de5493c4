import logging
from functools import wraps
import docker.errors
import requests.exceptions
from ..errors import RuntimeUnreachable

logger = logging.getLogger(__name__)

CONNECTION_ERRORS = (
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
)


def check_instance_variable(variable_name):
    """
    A decorator that refuses to run a method once an instance variable is None.

    Used on runtime accessors whose client handle is dropped by `close()`.

    Args:
        variable_name: The name of the instance variable (as a string) to check.

    Raises:
        RuntimeUnreachable: If the variable is None.
        AttributeError: If the instance has no such variable.
    """

    def decorator(method):
        @wraps(method)
        def wrapper(self, *args, **kwargs):
            if not hasattr(self, variable_name):
                raise AttributeError(
                    f"Instance variable '{variable_name}' does not exist."
                )
            if getattr(self, variable_name) is None:
                raise RuntimeUnreachable(
                    f"Cannot call {method.__name__}(): the runtime handle is closed"
                )
            return method(self, *args, **kwargs)

        return wrapper

    return decorator


def runtime_query(action: str):
    """
    A decorator that turns transport failures of a read-only runtime call into
    RuntimeUnreachable.

    Any docker error raised while listing or inspecting means the snapshot can
    not be trusted, so API errors are fatal here as well.

    Args:
        action: Short description of the call, used in the error message.
    """

    def decorator(method):
        @wraps(method)
        def wrapper(self, *args, **kwargs):
            try:
                return method(self, *args, **kwargs)
            except CONNECTION_ERRORS as e:
                logger.error(f"Lost the runtime while trying to {action}: {e}")
                raise RuntimeUnreachable(
                    f"Runtime unreachable while trying to {action}"
                ) from e
            except docker.errors.DockerException as e:
                logger.error(f"Runtime failed to {action}: {e}")
                raise RuntimeUnreachable(f"Runtime failed to {action}: {e}") from e

        return wrapper

    return decorator
