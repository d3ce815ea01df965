"""In-memory answers of the attempt being taken."""
from __future__ import annotations

from typing import Any, Iterable, Mapping


class AnswerStore:
    """
    Question id -> answer, last write wins.

    Tracks which questions changed since the last drain so the sync
    coordinator knows whether a round has work to do. Answer shapes are not
    validated here.
    """

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._answers: dict[str, Any] = dict(initial or {})
        self._pending: set[str] = set()

    def __len__(self) -> int:
        return len(self._answers)

    def __contains__(self, question_id: object) -> bool:
        return question_id in self._answers

    def set_answer(self, question_id: str, value: Any) -> None:
        self._answers[question_id] = value
        self._pending.add(question_id)

    def get(self, question_id: str, default: Any = None) -> Any:
        return self._answers.get(question_id, default)

    def get_all(self) -> dict[str, Any]:
        """Snapshot of every answer."""
        return dict(self._answers)

    @property
    def has_pending(self) -> bool:
        return bool(self._pending)

    def drain_pending(self) -> set[str]:
        """Return and clear the ids changed since the last drain."""
        pending, self._pending = self._pending, set()
        return pending

    def snapshot_and_drain(self) -> dict[str, Any]:
        """Changed answers, clearing pending in the same step."""
        return {qid: self._answers[qid] for qid in self.drain_pending()}

    def restore_pending(self, question_ids: Iterable[str]) -> None:
        """Mark ids pending again after a failed flush."""
        self._pending.update(question_ids)
