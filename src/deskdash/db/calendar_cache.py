"""Month-keyed calendar event cache persisted as a single JSON document."""

import json
import logging
from datetime import date
from pathlib import Path

logger = logging.getLogger(__name__)

EventCache = dict[str, list[dict]]


def month_key(day: date) -> str:
    """Canonical YYYY-MM cache key."""
    return f"{day.year:04d}-{day.month:02d}"


def load_cache(path: Path) -> EventCache:
    """Read the cache; a missing or corrupt file yields an empty cache."""
    try:
        content = path.read_text()
    except FileNotFoundError:
        return {}
    except OSError as e:
        logger.warning("Could not read calendar cache %s: %s", path, e)
        return {}

    try:
        raw = json.loads(content)
    except json.JSONDecodeError as e:
        logger.warning("Could not decode calendar cache, starting fresh: %s", e)
        return {}

    if not isinstance(raw, dict):
        logger.warning("Calendar cache %s is not a JSON object, starting fresh", path)
        return {}

    return {
        str(month): [event for event in events if isinstance(event, dict)]
        for month, events in raw.items()
        if isinstance(events, list)
    }


def save_cache(path: Path, cache: EventCache) -> None:
    _ = path.write_text(json.dumps(cache, indent=2))
