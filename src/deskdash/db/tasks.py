"""JSON file storage for the task list."""

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class Task:
    title: str
    description: str = ""
    done: bool = False

    def display_text(self) -> str:
        mark = "x" if self.done else " "
        return f"[{mark}] {self.title}"

    def filter_text(self) -> str:
        return self.title


DEFAULT_TASKS = [
    "Welcome to DeskDash!",
    "Press 'o' to add a new task",
    "Press 'i' to edit a task",
    "Use the arrow keys to navigate",
    "Press 'space' to complete a task",
    "Press 'enter' to confirm edit",
    "Press 'esc' to cancel edit",
    "Press 'ctrl+d' to delete a task",
]


def save_tasks(path: Path, tasks: list[Task]) -> None:
    """Rewrite the whole task file."""
    data = json.dumps([asdict(t) for t in tasks], separators=(",", ":"))
    _ = path.write_text(data)


def _task_from_dict(raw: dict) -> Task:
    return Task(
        title=str(raw.get("title", "")),
        description=str(raw.get("description", "")),
        done=bool(raw.get("done", False)),
    )


def load_tasks(path: Path) -> list[Task]:
    """Load tasks, seeding the default list when the file does not exist."""
    if not path.exists():
        tasks = [Task(title=title) for title in DEFAULT_TASKS]
        try:
            save_tasks(path, tasks)
        except OSError as e:
            logger.warning("Could not write default tasks to %s: %s", path, e)
        return tasks

    try:
        raw = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Could not read tasks from %s, starting empty: %s", path, e)
        return []

    if not isinstance(raw, list):
        logger.warning("Task file %s is not a JSON array, starting empty", path)
        return []
    return [_task_from_dict(item) for item in raw if isinstance(item, dict)]
