"""Concurrent fan-out of independent store reads, joined before use."""

import asyncio
import logging
from typing import Any, Callable, Dict

logger = logging.getLogger(__name__)


async def gather_reads(**reads: Callable[[], Any]) -> Dict[str, Any]:
    """Run each blocking read in a worker thread and wait for all of them.

    Results come back keyed by argument name. If any read fails, the reads
    still pending are cancelled and the first error is re-raised. Reads are
    side-effect free, so abandoning one leaves the store untouched.
    """
    tasks = {
        name: asyncio.create_task(asyncio.to_thread(read), name=f"read:{name}")
        for name, read in reads.items()
    }
    try:
        await asyncio.gather(*tasks.values())
    except BaseException:
        pending = [task for task in tasks.values() if not task.done()]
        for task in pending:
            task.cancel()
        logger.debug(f"Read failed; cancelled {len(pending)} pending read(s)")
        await asyncio.gather(*tasks.values(), return_exceptions=True)
        raise
    return {name: task.result() for name, task in tasks.items()}
