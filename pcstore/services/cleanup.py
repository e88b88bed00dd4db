"""
Best-effort Side Effects

Remote image deletion is a side effect of catalog mutations, never part of
their outcome. These helpers await the cleanup, log what happened, and
swallow the failure so the primary operation's result stands.
"""

import asyncio
from typing import Any, Awaitable, Callable, Iterable, List, Optional

import structlog

from pcstore.integrations.images import ImageStore
from pcstore.services.errors import AssetCleanupFailed

logger = structlog.get_logger(__name__)


async def run_best_effort(
    label: str,
    operation: Callable[[], Awaitable[Any]],
    **context: Any,
) -> Optional[AssetCleanupFailed]:
    """
    Await `operation()` and never raise.

    Returns:
        None on success, otherwise the AssetCleanupFailed that was logged
    """
    try:
        result = await operation()
    except asyncio.CancelledError:
        raise
    except Exception as e:
        failure = AssetCleanupFailed(f"{label} failed", detail=f"{type(e).__name__}: {e}")
        logger.warning(
            "cleanup_failed",
            operation=label,
            error=failure.detail,
            **context,
        )
        return failure

    logger.debug("cleanup_completed", operation=label, result=result, **context)
    return None


async def delete_image_best_effort(store: ImageStore, url: str, **context: Any) -> Optional[AssetCleanupFailed]:
    """Delete one hosted image by URL, logging instead of raising."""
    return await run_best_effort(
        "delete_image",
        lambda: store.delete_asset_by_url(url),
        url=url,
        **context,
    )


async def delete_images_best_effort(
    store: ImageStore,
    urls: Iterable[str],
    **context: Any,
) -> List[Optional[AssetCleanupFailed]]:
    """Delete every URL concurrently; one failure does not affect the others."""
    return list(
        await asyncio.gather(
            *(delete_image_best_effort(store, url, **context) for url in urls if url)
        )
    )
