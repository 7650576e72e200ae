"""Bot command telemetry decorator."""
from __future__ import annotations

import functools
import time
from typing import Any, Callable

from .telemetry import get_telemetry


def _actor_id(first_arg: Any) -> str:
    """Return the platform user id behind a command invocation.

    Discord commands receive a ``commands.Context`` (``ctx.author``), Telegram
    handlers an ``Update`` (``update.effective_user``).
    """

    user = getattr(first_arg, "author", None) or getattr(first_arg, "effective_user", None)
    user_id = getattr(user, "id", None)
    return str(user_id) if user_id is not None else "unknown"


def track_command(platform: str) -> Callable[[Callable], Callable]:
    """Decorator factory tracking command usage and failures for ``platform``."""

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(first_arg: Any, *args, **kwargs) -> Any:
            telemetry = get_telemetry()
            command_name = func.__name__
            start_time = time.time()
            success = False

            try:
                result = await func(first_arg, *args, **kwargs)
                success = True
                return result

            except Exception as e:
                telemetry.track_error(
                    type(e).__name__,
                    command=command_name,
                    platform=platform,
                    error_details=str(e),
                )
                raise

            finally:
                duration_ms = (time.time() - start_time) * 1000
                telemetry.track_command(
                    command_name,
                    platform,
                    _actor_id(first_arg),
                    success=success,
                    duration_ms=duration_ms,
                )

        return wrapper

    return decorator


__all__ = ["track_command"]
