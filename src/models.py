"""
Canonical shapes shared by the normalizer, scoring engine, ledger and session.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class Option:
    key: str
    label: str


@dataclass(frozen=True)
class Question:
    id: str
    prompt: str
    options: Tuple[Option, ...]
    correct_key: str

    def option_keys(self) -> List[str]:
        return [o.key for o in self.options]


@dataclass(frozen=True)
class Test:
    id: str
    name: str
    duration: str
    questions: Tuple[Question, ...] = ()


@dataclass(frozen=True)
class Result:
    """One scored attempt. Immutable; owned by the ledger after creation."""
    id: str
    test_id: str
    learner_name: str
    learner_email: str
    test_name: str
    created_at: str
    mcq_score: int
    subjective_score: int
    total: int

    # Wire keys match the records the portal has always written to the results slot.
    def to_record(self) -> Dict:
        return {
            "id": self.id,
            "testId": self.test_id,
            "studentName": self.learner_name,
            "studentEmail": self.learner_email,
            "testName": self.test_name,
            "date": self.created_at,
            "mcqScore": self.mcq_score,
            "subjectiveScore": self.subjective_score,
            "total": self.total,
        }

    @classmethod
    def from_record(cls, record: Dict) -> "Result":
        """
        Rebuild a Result from a stored record.

        Raises:
            KeyError, TypeError, ValueError: record is missing fields or carries
            values of the wrong type.
        """
        if not isinstance(record, dict):
            raise TypeError(f"Result record must be an object, got {type(record).__name__}")
        scores = {}
        for name in ("mcqScore", "subjectiveScore", "total"):
            value = record[name]
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")
            scores[name] = value
        if scores["total"] != scores["mcqScore"] + scores["subjectiveScore"]:
            raise ValueError(f"total {scores['total']} != mcqScore + subjectiveScore")
        texts = {}
        for name in ("id", "testId", "studentName", "studentEmail", "testName", "date"):
            value = record[name]
            if not isinstance(value, str):
                raise ValueError(f"{name} must be a string, got {value!r}")
            texts[name] = value
        return cls(
            id=texts["id"],
            test_id=texts["testId"],
            learner_name=texts["studentName"],
            learner_email=texts["studentEmail"],
            test_name=texts["testName"],
            created_at=texts["date"],
            mcq_score=scores["mcqScore"],
            subjective_score=scores["subjectiveScore"],
            total=scores["total"],
        )


@dataclass(frozen=True)
class UploadRef:
    """Opaque handle to a handwritten answer file. Only the grader looks inside."""
    name: str
    content_type: Optional[str] = None
    data: Optional[bytes] = field(default=None, repr=False)


@dataclass
class AttemptInput:
    """Transient per-attempt state. Never persisted."""
    test: Test
    learner_name: str = ""
    learner_email: str = ""
    answers: Dict[str, str] = field(default_factory=dict)
    upload_ref: Optional[UploadRef] = None
