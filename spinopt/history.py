from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional

STATUS_PENDING = "pending"
STATUS_SUCCESS = "success"
STATUS_FAIL = "fail"


@dataclass
class HistoryRecord:
    """
    One recorded spin: the two raw inputs, their difference and the winning
    number (None while unresolved). The remaining fields are filled in by
    the replay and describe which prediction types would have won.
    """
    id: int
    num1: int
    num2: int
    difference: Optional[int] = None
    winning_number: Optional[int] = None
    hit_types: List[str] = field(default_factory=list)
    type_success_status: Dict[str, bool] = field(default_factory=dict)
    status: str = STATUS_PENDING
    recommended_group_id: Optional[str] = None
    pocket_distance: Optional[float] = None
    recommended_group_pocket_distance: Optional[float] = None

    def __post_init__(self):
        if self.difference is None:
            self.difference = abs(self.num1 - self.num2)

    @property
    def is_resolved(self) -> bool:
        return self.winning_number is not None

    def copy(self) -> "HistoryRecord":
        """Independent copy; the replay never touches the caller's records."""
        return replace(
            self,
            hit_types=list(self.hit_types),
            type_success_status=dict(self.type_success_status),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryRecord":
        """Accepts both the camelCase wire keys and snake_case keys."""
        winning_number = data.get("winningNumber", data.get("winning_number"))
        difference = data.get("difference")
        return cls(
            id=int(data["id"]),
            num1=int(data["num1"]),
            num2=int(data["num2"]),
            difference=int(difference) if difference is not None else None,
            winning_number=int(winning_number) if winning_number is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "num1": self.num1,
            "num2": self.num2,
            "difference": self.difference,
            "winningNumber": self.winning_number,
            "hitTypes": list(self.hit_types),
            "status": self.status,
            "recommendedGroupId": self.recommended_group_id,
        }


def sort_history(history: Iterable[HistoryRecord]) -> List[HistoryRecord]:
    """Chronological order by id."""
    return sorted(history, key=lambda record: record.id)


def count_resolved(history: Iterable[HistoryRecord]) -> int:
    return sum(1 for record in history if record.is_resolved)
