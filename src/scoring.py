"""
Scoring engine: MCQ count plus an externally graded subjective score.

Scoring: correct key +1, wrong or unanswered 0. The subjective part is never
computed here; it is whatever the upload grader returned.
"""
import logging
import time
from datetime import datetime
from typing import Callable, Dict, Mapping, Optional

from engine import MAX_SUBJECTIVE_SCORE, MCQ_CORRECT_SCORE
from src.models import Result, Test

logger = logging.getLogger(__name__)

CREATED_AT_FORMAT = "%Y-%m-%d %H:%M:%S"


class InvalidSubmission(ValueError):
    """Submission refused: learner identity is incomplete."""


class ResultIdFactory:
    """
    Builds result ids as "{test_id}-{epoch_ms}".

    Two results for the same test in the same millisecond would collide, so the
    timestamp is bumped past the last one issued for that test.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._last_ms: Dict[str, int] = {}

    def __call__(self, test_id: str) -> str:
        ms = int(self._clock() * 1000)
        last = self._last_ms.get(test_id)
        if last is not None and ms <= last:
            ms = last + 1
        self._last_ms[test_id] = ms
        return f"{test_id}-{ms}"


_default_ids = ResultIdFactory()


def max_mcq_score(test: Test) -> int:
    return len(test.questions) * MCQ_CORRECT_SCORE


def max_total_score(test: Test) -> int:
    return max_mcq_score(test) + MAX_SUBJECTIVE_SCORE


def mcq_score(test: Test, answers: Mapping[str, str]) -> int:
    """Count questions answered with their correct key. Unknown question ids are ignored."""
    return sum(MCQ_CORRECT_SCORE for q in test.questions if answers.get(q.id) == q.correct_key)


def _subjective(value) -> int:
    score = int(value)
    if score < 0:
        logger.warning(f"Subjective score {score} is negative; using 0")
        return 0
    if score > MAX_SUBJECTIVE_SCORE:
        logger.warning(f"Subjective score {score} exceeds {MAX_SUBJECTIVE_SCORE}; keeping it unchanged")
    return score


def check_identity(learner_name: str, learner_email: str) -> None:
    missing = [
        field
        for field, value in (("name", learner_name), ("email", learner_email))
        if not (value or "").strip()
    ]
    if missing:
        raise InvalidSubmission(f"Learner {' and '.join(missing)} required")


def score(
    test: Test,
    answers: Mapping[str, str],
    subjective_score: int,
    *,
    learner_name: str,
    learner_email: str,
    now: Optional[datetime] = None,
    id_factory: Optional[Callable[[str], str]] = None,
) -> Result:
    """
    Score one attempt.

    Args:
        test: Canonical test that was attempted
        answers: {question_id: chosen option key}; may be partial
        subjective_score: Integer from the upload grader, passed through
        learner_name, learner_email: Must be non-empty after trimming
        now: Creation time (defaults to local now)
        id_factory: test_id -> unique result id

    Returns:
        A new immutable Result

    Raises:
        InvalidSubmission: name or email is blank
    """
    check_identity(learner_name, learner_email)
    mcq = mcq_score(test, answers)
    subjective = _subjective(subjective_score)
    created = now or datetime.now()
    result = Result(
        id=(id_factory or _default_ids)(test.id),
        test_id=test.id,
        learner_name=learner_name.strip(),
        learner_email=learner_email.strip(),
        test_name=test.name,
        created_at=created.strftime(CREATED_AT_FORMAT),
        mcq_score=mcq,
        subjective_score=subjective,
        total=mcq + subjective,
    )
    logger.info(f"Scored {result.id}: MCQ={mcq}/{max_mcq_score(test)}, subjective={subjective}, total={result.total}")
    return result
