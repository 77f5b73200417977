"""Step result memo.

Key schema:
    step:{run_id}:{step_name}  -> JSON {"result": <value>, "completed_at": <ts>}
"""

import time
from typing import Any, Optional, Tuple

from nodeflow.core.cache import CacheService
from nodeflow.core.logging import get_logger

logger = get_logger(__name__)


class StepCache:
    """Memoizes completed step results keyed by ``(run_id, step_name)``."""

    def __init__(self, cache_service: CacheService, ttl: Optional[int] = None):
        self.cache = cache_service
        self.ttl = ttl

    async def get_result(self, key: str) -> Tuple[bool, Any]:
        """Return ``(hit, result)``; a memoized ``None`` is still a hit."""
        entry = await self.cache.get(key)
        if entry is None:
            return False, None
        return True, entry.get("result")

    async def set_result(self, key: str, result: Any) -> None:
        await self.cache.set(key, {"result": result, "completed_at": time.time()}, ttl=self.ttl)

    async def clear_run(self, run_id: str) -> int:
        """Drop every memoized step of a run."""
        deleted = await self.cache.clear_pattern(f"step:{run_id}:*")
        logger.debug("Cleared step memo", run_id=run_id, deleted=deleted)
        return deleted
