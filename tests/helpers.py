"""
Test helpers
"""

import asyncio


async def settle(predicate, attempts: int = 100) -> None:
    """Yield to the event loop until predicate() holds"""
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")
