"""
JSON file state store: Infrastructure adapter for local persistence.

Keeps the whole store in one JSON document:

    {"learners": {"<learner_id>": {"review_states": {...}, "sessions": [...], "unlocks": {...}}}}

The document is loaded once and rewritten atomically after every mutation.
Read and write errors propagate to the caller.
"""

import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter

from fidel.domain.models import ReviewState, Session

from .memory_store import InMemoryStateStore

logger = logging.getLogger(__name__)

_STATE_ADAPTER = TypeAdapter(ReviewState)
_SESSION_ADAPTER = TypeAdapter(Session)
_UNLOCKS_ADAPTER = TypeAdapter(dict[str, datetime])


class JsonFileStateStore(InMemoryStateStore):
    """
    StateStore backed by a JSON file.

    Serialisation goes through pydantic TypeAdapters over the domain
    dataclasses, so the file is validated on load.
    """

    def __init__(self, path: Path):
        super().__init__()
        self.path = Path(path)
        if self.path.exists():
            self._load()

    def put_review_state(self, learner_id: str, state: ReviewState) -> None:
        super().put_review_state(learner_id, state)
        self._flush()

    def append_session(self, learner_id: str, session: Session) -> None:
        super().append_session(learner_id, session)
        self._flush()

    def put_unlocks(self, learner_id: str, unlocks: dict[str, datetime]) -> None:
        super().put_unlocks(learner_id, unlocks)
        self._flush()

    def _load(self) -> None:
        raw = json.loads(self.path.read_text(encoding="utf-8"))
        for learner_id, data in raw.get("learners", {}).items():
            for state in data.get("review_states", {}).values():
                self._states[learner_id][state["card_id"]] = _STATE_ADAPTER.validate_python(state)
            self._sessions[learner_id] = [
                _SESSION_ADAPTER.validate_python(s) for s in data.get("sessions", [])
            ]
            self._unlocks[learner_id] = _UNLOCKS_ADAPTER.validate_python(data.get("unlocks", {}))
        logger.debug(f"[store] Loaded {len(self._states)} learner(s) from {self.path}")

    def _dump(self) -> dict[str, Any]:
        learners: dict[str, Any] = {}
        for learner_id in set(self._states) | set(self._sessions) | set(self._unlocks):
            learners[learner_id] = {
                "review_states": {
                    card_id: _STATE_ADAPTER.dump_python(state, mode="json")
                    for card_id, state in self._states[learner_id].items()
                },
                "sessions": [
                    _SESSION_ADAPTER.dump_python(s, mode="json") for s in self._sessions[learner_id]
                ],
                "unlocks": _UNLOCKS_ADAPTER.dump_python(self._unlocks[learner_id], mode="json"),
            }
        return {"learners": learners}

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(self._dump(), indent=2, sort_keys=True)

        # Same directory as the target so os.replace stays atomic
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".state-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
