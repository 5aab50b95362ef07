"""
On-disk store for in-progress test sessions.

One JSON document per (user, test) so a paused or interrupted attempt can be
resumed from the dashboard after the browser tab is gone.
"""
import json
import logging
from pathlib import Path
from typing import Dict, Iterable, Optional

from src.models import Test

logger = logging.getLogger(__name__)


def session_key(user_id: str, test_id: str) -> str:
    return f"pp_session_{user_id}_{test_id}"


def is_resumable(saved: Optional[Dict]) -> bool:
    """Time left, answers present, and not terminated for leaving the page."""
    if not saved:
        return False
    time_left = saved.get("time_left") or 0
    return time_left > 0 and isinstance(saved.get("user_answers"), list) and not saved.get("ended_for_cheating")


class SessionStore:
    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _path(self, user_id: str, test_id: str) -> Path:
        return self.directory / f"{session_key(user_id, test_id)}.json"

    def save(self, user_id: str, test_id: str, payload: Dict) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(user_id, test_id)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(json.dumps(payload), encoding="utf-8")
        tmp.replace(path)

    def load(self, user_id: str, test_id: str) -> Optional[Dict]:
        path = self._path(user_id, test_id)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable session %s: %s", path.name, e)
            return None
        return data if isinstance(data, dict) else None

    def clear(self, user_id: str, test_id: str) -> None:
        self._path(user_id, test_id).unlink(missing_ok=True)

    def find_paused(self, user_id: str, tests: Iterable[Test]) -> Optional[Test]:
        """First test with a session the user can pick up again."""
        for test in tests:
            if is_resumable(self.load(user_id, test.id)):
                return test
        return None
