"""Timer trigger blueprint — scheduled sweep of expired cache entries."""

import logging

import azure.functions as func

from drive_parents.config import load_config
from drive_parents.resolution.cache import result_cache_from_config
from drive_parents.store.blob import blob_store_from_config

logger = logging.getLogger(__name__)

bp = func.Blueprint()


@bp.timer_trigger(
    schedule="0 */5 * * * *",
    arg_name="timer",
    run_on_startup=False,
)
def purge_cache(timer: func.TimerRequest) -> None:
    """Scheduled trigger that removes expired resolution cache entries.

    Runs every 5 minutes, matching the cache TTL. Reads only drop stale
    entries they touch, so this keeps files that are never requested again
    from accumulating in storage.
    """
    logger.info("[purge_cache] timer trigger fired")

    try:
        if timer.past_due:
            logger.warning("[purge_cache] timer trigger is past due")

        config = load_config()
        cache = result_cache_from_config(config, blob_store_from_config(config))
        removed = cache.purge_expired()
        logger.info("[purge_cache] purge complete; entry_count:%d", removed)

    except Exception:
        logger.exception("[purge_cache] timer trigger failed")
        raise
