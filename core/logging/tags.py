"""Standard logging tags for consistent log filtering.

Usage:
    from core.logging.tags import TAG_GUARD
    logger.info("%s Acquired for %s", TAG_GUARD, name)
"""

# =============================================================================
# Engine
# =============================================================================

TAG_ASYNC = "[ASYNC]"
"""Worker pool submissions, handle completion and cancellation."""

TAG_DISPATCH = "[DISPATCH]"
"""Marshaling onto the presentation thread."""

TAG_POLL = "[POLL]"
"""Completion poller timer lifecycle and delivery."""

TAG_GUARD = "[GUARD]"
"""Single-flight operation guard acquire/release/rejection."""

# =============================================================================
# Health
# =============================================================================

TAG_HEALTH = "[HEALTH]"
"""Health aggregation summaries."""

TAG_PROBE = "[PROBE]"
"""Individual probe execution and probe failures."""

TAG_RECOVERY = "[RECOVERY]"
"""Auto-recovery attempts and outcomes."""

# =============================================================================
# Platform
# =============================================================================

TAG_PS = "[PS]"
"""PowerShell invocations made by platform collaborators."""

TAG_FALLBACK = "[FALLBACK]"
"""A degraded code path was taken (highlighted on the console)."""


ALL_TAGS = (
    TAG_ASYNC,
    TAG_DISPATCH,
    TAG_POLL,
    TAG_GUARD,
    TAG_HEALTH,
    TAG_PROBE,
    TAG_RECOVERY,
    TAG_PS,
    TAG_FALLBACK,
)


def has_tag(message: str, tag: str) -> bool:
    """Return True if ``message`` carries ``tag``."""
    return tag in str(message)
