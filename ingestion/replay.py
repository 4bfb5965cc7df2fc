"""Replay recorded feed messages through the ingestion path."""

import logging
from pathlib import Path
from typing import Awaitable, Callable, Union

logger = logging.getLogger(__name__)


async def replay_notifications(
    path: Union[str, Path],
    handle_message: Callable[[str], Awaitable[None]],
) -> int:
    """
    Feed every line of a JSON-lines capture to `handle_message`.

    `handle_message` is the listener's raw-message entry point, so bad
    lines are reported and dropped exactly as they would be live.

    Returns:
        Number of non-blank lines replayed
    """
    count = 0
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            await handle_message(line)
            count += 1

    logger.info(f"Replayed {count} feed messages from {path}")
    return count
