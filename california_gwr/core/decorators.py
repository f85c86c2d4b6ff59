"""
Decorators shared by the fitting, plotting and export layers.

Data and model code lets domain errors propagate. ``error_handler`` is meant
for figures and output files: a failure there is logged against the figure or
file it concerns and the analysis carries on.
"""
import time
import inspect
import logging
import functools
from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Type, TypeVar, cast

from .exceptions import ConfigurationError, DataProcessingError, ModelError, ValidationError

F = TypeVar('F', bound=Callable[..., Any])
logger = logging.getLogger(__name__)

# upstream failures that a presentation fallback must not hide
PROPAGATED_ERRORS: Tuple[Type[Exception], ...] = (
    ConfigurationError, ValidationError, DataProcessingError, ModelError
)


def _call_arguments(func: Callable, args: tuple, kwargs: dict) -> Dict[str, Any]:
    """Arguments of a call by parameter name, defaults included."""
    try:
        bound = inspect.signature(func).bind(*args, **kwargs)
    except TypeError:
        return {}
    bound.apply_defaults()
    return dict(bound.arguments)


def _describe_call(func: Callable, label: Sequence[str], args: tuple, kwargs: dict) -> str:
    """Function name plus the scalar arguments named in ``label``."""
    if not label:
        return func.__qualname__

    arguments = _call_arguments(func, args, kwargs)
    parts = [
        f"{name}={arguments[name]!r}" for name in label
        if isinstance(arguments.get(name), (str, int, float))
    ]
    return f"{func.__qualname__}({', '.join(parts)})" if parts else func.__qualname__


def error_handler(
    fallback_value: Any = None,
    label: Sequence[str] = (),
    log_level: str = "error",
    include_traceback: bool = True,
    exception_types: Tuple[Type[Exception], ...] = (Exception,),
    propagate: Tuple[Type[Exception], ...] = PROPAGATED_ERRORS
) -> Callable[[F], F]:
    """
    Log a failed figure or output write and return a fallback instead.

    Args:
        fallback_value: Returned on failure; called first if callable
        label: Parameter names (e.g. ``filename``, ``column``) whose values
            identify the figure or file in the log message
        log_level: Level of the failure message
        include_traceback: Attach the traceback to the message
        exception_types: Exceptions replaced by the fallback
        propagate: Exceptions always re-raised, even if listed above
    """
    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except propagate:
                raise
            except exception_types as e:
                target = _describe_call(func, label, args, kwargs)
                log_method = getattr(logger, log_level.lower(), logger.error)
                log_method(f"{target} failed: {e}", exc_info=include_traceback)
                return fallback_value() if callable(fallback_value) else fallback_value
        return cast(F, wrapper)
    return decorator


def performance_tracker(name: Optional[str] = None, level: str = "debug") -> Callable[[F], F]:
    """Log the wall-clock time of each call."""
    def decorator(func: F) -> F:
        func_name = name or func.__qualname__

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.debug(f"{func_name} raised {type(e).__name__} after "
                             f"{time.perf_counter() - start:.3f}s")
                raise

            log_method = getattr(logger, level.lower(), logger.debug)
            log_method(f"{func_name} took {time.perf_counter() - start:.3f}s")
            return result
        return cast(F, wrapper)
    return decorator


def validate_inputs(**validators: Callable[[Any], bool]) -> Callable[[F], F]:
    """
    Check named arguments, defaults included, before the call.

    Raises:
        ValidationError: When a validator returns False
    """
    def decorator(func: F) -> F:
        unknown = set(validators) - set(inspect.signature(func).parameters)
        if unknown:
            raise TypeError(f"{func.__qualname__} has no parameters {sorted(unknown)}")

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            arguments = _call_arguments(func, args, kwargs)
            for param_name, validator in validators.items():
                if param_name in arguments and not validator(arguments[param_name]):
                    raise ValidationError(
                        f"{func.__qualname__}: invalid {param_name}={arguments[param_name]!r}"
                    )
            return func(*args, **kwargs)
        return cast(F, wrapper)
    return decorator


class performance_context:
    """Time a block of code; the duration is kept on ``elapsed``."""

    def __init__(self, name: str, level: str = "debug"):
        self.name = name
        self.level = level
        self.start = 0.0
        self.elapsed = 0.0

    def __enter__(self) -> 'performance_context':
        self.start = time.perf_counter()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.elapsed = time.perf_counter() - self.start
        if exc_type:
            logger.debug(f"{self.name} raised {exc_type.__name__} after {self.elapsed:.3f}s")
        else:
            log_method = getattr(logger, self.level.lower(), logger.debug)
            log_method(f"{self.name} took {self.elapsed:.3f}s")
