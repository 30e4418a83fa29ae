from typing import List, Optional

from app.features.link_audit.schemas.link_audit import ResultRecord


class ResultAggregator:
    """
    Holds one ResultRecord per input URL in input order.

    Records are stored by their input index, so results finishing out of
    order are still read back in the order the URLs were submitted.
    """

    def __init__(self, total: int):
        self.total = total
        self._slots: List[Optional[ResultRecord]] = [None] * total

    def add(self, index: int, record: ResultRecord):
        if not 0 <= index < self.total:
            raise IndexError(f"result index {index} outside batch of {self.total}")
        if self._slots[index] is not None:
            raise ValueError(f"result for index {index} was already recorded")
        self._slots[index] = record

    @property
    def collected(self) -> int:
        return sum(1 for slot in self._slots if slot is not None)

    def is_complete(self) -> bool:
        return self.collected == self.total

    def records(self) -> List[ResultRecord]:
        """All records in input order; only valid once every URL has a result."""
        if not self.is_complete():
            missing = [i for i, slot in enumerate(self._slots) if slot is None]
            raise ValueError(f"results missing for indexes {missing}")
        return list(self._slots)
