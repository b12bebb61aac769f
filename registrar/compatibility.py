"""
Concurrent compatibility checks.

checkAll() runs every driver's compatibility check at once, one asyncio
task per driver, all sharing one CheckContext, and returns one verdict per
driver in input order.

- Coroutine checks are awaited on the running loop
- Plain checks run in worker threads (asyncio.to_thread), so blocking
  checks still overlap
- Each task writes only its own result slot; no shared list is appended to
- A missing check or a check that raises counts as incompatible

Property of Uncompromising Sensors LLC.
"""

# Imports
import asyncio, inspect
from typing import List, Sequence

# Local imports
from .context import CheckContext
from .driver import Driver
from .logging import getLogger, setDriverContext

# Module-level logger (auto-detects: 'registrar.compatibility')
log = getLogger()


async def _runCheck(driver: Driver, ctx: CheckContext, slots: List[bool], index: int, logger):

    # Tag every log record emitted during this check with the driver identity
    setDriverContext(driver.name, driver.protocol)

    check = driver.compatibilityCheck()
    if check is None:
        logger.debug('No compatibility check, treating as incompatible', driver=driver.name, protocol=driver.protocol)
        return

    try:
        if inspect.iscoroutinefunction(check):
            result = await check(ctx)
        else:
            result = await asyncio.to_thread(check, ctx)
            # A plain callable may still hand back an awaitable
            if inspect.isawaitable(result):
                result = await result
        slots[index] = bool(result)
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.error(f'Compatibility check failed: {e!r}', driver=driver.name, protocol=driver.protocol,
                     errorClass=type(e).__name__, errorMsg=str(e))


async def checkAll(drivers: Sequence[Driver], ctx: CheckContext, logger=None) -> List[bool]:
    """Run all compatibility checks concurrently and wait for every one. Returns verdicts in input order."""
    logger = logger if logger is not None else log
    slots = [False] * len(drivers)
    if not drivers:
        return slots

    # gather() cancels every pending check if the caller is cancelled
    await asyncio.gather(*(asyncio.create_task(_runCheck(driver, ctx, slots, index, logger), name=f"compatible:{driver.name}")
                           for index, driver in enumerate(drivers)))

    return slots
