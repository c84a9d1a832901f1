# pricewatch/detector/escalation.py

"""Escalating wait for asynchronously rendered product pages.

Pages may build their product markup after load, so classification runs
in three increasingly patient tiers and stops at the first success:

1. one immediate attempt;
2. bounded polling with a fixed delay before each attempt;
3. re-classification on every body mutation, bounded by a timeout.

The tiers run inside one coroutine.  Cancelling the task that awaits
:func:`detect_product_page` aborts whichever tier is suspended and
releases its timer or mutation subscription.
"""

import asyncio
import logging
from collections.abc import Callable

from pricewatch.pages.document import DocumentQuery, MutationRecord

logger = logging.getLogger("pricewatch.escalation")

Classifier = Callable[[], bool]


async def poll_for_product(
    classify: Classifier, attempts: int, delay: float,
) -> bool:
    """Retry *classify* up to *attempts* times, sleeping before each."""
    for attempt in range(1, attempts + 1):
        await asyncio.sleep(delay)
        if classify():
            logger.debug(
                "Product detected on poll attempt %d/%d",
                attempt,
                attempts,
            )
            return True
    logger.debug("Polling exhausted after %d attempts", attempts)
    return False


async def wait_for_mutation(
    classify: Classifier, document: DocumentQuery, timeout: float,
) -> bool:
    """Re-run *classify* on each body mutation until success or timeout."""
    loop = asyncio.get_running_loop()
    found: asyncio.Future[bool] = loop.create_future()

    def on_mutation(records: list[MutationRecord]) -> None:
        if found.done():
            return
        logger.debug("Body mutation (%d records)", len(records))
        if classify():
            found.set_result(True)

    unsubscribe = document.observe(
        on_mutation, child_list=True, character_data=True, subtree=True,
    )
    try:
        return await asyncio.wait_for(found, timeout)
    except asyncio.TimeoutError:
        logger.debug("No product markup within %.1fs", timeout)
        return False
    finally:
        unsubscribe()


async def detect_product_page(
    classify: Classifier,
    document: DocumentQuery,
    *,
    attempts: int,
    delay: float,
    timeout: float,
) -> bool:
    """Run the three detection tiers in order; False means not a product."""
    if classify():
        logger.debug("Product detected immediately")
        return True
    if await poll_for_product(classify, attempts, delay):
        return True
    if await wait_for_mutation(classify, document, timeout):
        logger.debug("Product detected after a body mutation")
        return True
    logger.info("Not a product page: %s", document.url)
    return False
