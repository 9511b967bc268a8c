"""Process-wide resolver: owns the detection cache for the application."""

from __future__ import annotations

from nativelaunch._cache import DetectionCache
from nativelaunch._collaborators import BinaryLocator, Settings
from nativelaunch._config import LauncherConfig
from nativelaunch._resolver import ComputeBackendResolver

_resolver_instance: ComputeBackendResolver | None = None

# Used before init(): probes run on every query and nothing is cached.
_uncached = ComputeBackendResolver(cache=None)


def _get_resolver() -> ComputeBackendResolver:
    """Return the initialized resolver or the uncached fallback."""
    if _resolver_instance is not None:
        return _resolver_instance
    return _uncached


def init(
    *,
    settings: Settings | None = None,
    locator: BinaryLocator | None = None,
    config: LauncherConfig | None = None,
    prewarm: bool = False,
) -> ComputeBackendResolver:
    """Create the process-wide resolver with an empty detection cache.

    ``prewarm=True`` runs every probe immediately; call it from startup code,
    not from an interactive path, since probes spawn vendor tools.
    """
    global _resolver_instance  # noqa: PLW0603

    if _resolver_instance is not None:
        shutdown()

    _resolver_instance = ComputeBackendResolver(
        settings=settings,
        cache=DetectionCache(),
        locator=locator,
        config=config,
    )
    if prewarm:
        _resolver_instance.prewarm()
    return _resolver_instance


def shutdown() -> None:
    """Drop the process-wide resolver and its cached results."""
    global _resolver_instance  # noqa: PLW0603
    if _resolver_instance is not None:
        _resolver_instance.clear_cache()
        _resolver_instance = None
