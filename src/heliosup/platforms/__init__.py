"""Platform strategies and the compile lifecycle."""

from heliosup.errors import ValidationError

from .android import AndroidStrategy
from .apple import AppleStrategy
from .base import BuildContext, PlatformFactory, PlatformStrategy

_STRATEGIES = {
    "apple": AppleStrategy,
    "android": AndroidStrategy,
}


def get_strategy(name: str) -> PlatformStrategy:
    try:
        factory = _STRATEGIES[name]
    except KeyError as exc:
        raise ValidationError(
            f"Unknown platform `{name}`.",
            hint=f"Choose one of: {', '.join(sorted(_STRATEGIES))}.",
        ) from exc
    return factory()


__all__ = [
    "AndroidStrategy",
    "AppleStrategy",
    "BuildContext",
    "PlatformFactory",
    "PlatformStrategy",
    "get_strategy",
]
