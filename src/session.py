"""
Attempt session: one learner, one in-flight attempt at a time.

    BROWSING --select--> ATTEMPTING --submit--> SUBMITTED
                         ^   |  (reselect resets)    |
                         +---+-------select----------+
    any --browse--> BROWSING (nothing cleared)
"""
import logging
from enum import Enum
from typing import Callable, Dict, Optional

from src.ledger import ResultsLedger, StorageWriteError
from src.models import AttemptInput, Result, Test, UploadRef
from src.scoring import InvalidSubmission, check_identity, score

logger = logging.getLogger(__name__)


class SessionState(Enum):
    BROWSING = "browsing"
    ATTEMPTING = "attempting"
    SUBMITTED = "submitted"


class SessionStateError(RuntimeError):
    """Operation not allowed in the session's current state."""


_TRANSITIONS = {
    SessionState.BROWSING: {SessionState.BROWSING, SessionState.ATTEMPTING},
    SessionState.ATTEMPTING: {SessionState.BROWSING, SessionState.ATTEMPTING, SessionState.SUBMITTED},
    SessionState.SUBMITTED: {SessionState.BROWSING, SessionState.ATTEMPTING},
}


class AttemptSession:
    """Coordinates selection, answering and submission of a single attempt."""

    def __init__(self, ledger: ResultsLedger, evaluator, id_factory: Optional[Callable[[str], str]] = None):
        """
        Args:
            ledger: Hydrated results ledger; successful submissions are appended here
            evaluator: Upload grader with evaluate(upload, test_id, learner_email) -> int
            id_factory: Optional test_id -> result id (defaults to the scoring engine's)
        """
        self.ledger = ledger
        self.evaluator = evaluator
        self.id_factory = id_factory

        self.state = SessionState.BROWSING
        self.test: Optional[Test] = None
        self.attempt: Optional[AttemptInput] = None
        self.result: Optional[Result] = None

    def _transition(self, target: SessionState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise SessionStateError(f"Cannot go from {self.state.value} to {target.value}")
        logger.debug(f"Session: {self.state.value} -> {target.value}")
        self.state = target

    def _require_attempt(self) -> AttemptInput:
        if self.state is not SessionState.ATTEMPTING or self.attempt is None:
            raise SessionStateError(f"No attempt in progress (state: {self.state.value})")
        return self.attempt

    # ----- transitions -----

    def select(self, test: Test) -> None:
        """Start a fresh attempt. Always resets identity, answers and upload."""
        self._transition(SessionState.ATTEMPTING)
        self.test = test
        self.attempt = AttemptInput(test=test)
        self.result = None
        logger.info(f"Attempt started: {test.id} ({len(test.questions)} questions)")

    def browse(self) -> None:
        """Back to the test list. Transient fields are left for the next select() to reset."""
        self._transition(SessionState.BROWSING)

    def submit(self) -> Optional[Result]:
        """
        Score the attempt and append it to the ledger.

        Returns:
            The new Result, or None when the submission is refused (blank name or
            email) or the ledger could not be written. In both cases the session
            stays ATTEMPTING with its fields untouched.
        """
        attempt = self._require_attempt()
        try:
            check_identity(attempt.learner_name, attempt.learner_email)
        except InvalidSubmission as e:
            logger.info(f"Submission refused: {e}")
            return None

        subjective = self.evaluator.evaluate(attempt.upload_ref, attempt.test.id, attempt.learner_email.strip())
        try:
            result = score(
                attempt.test,
                attempt.answers,
                subjective,
                learner_name=attempt.learner_name,
                learner_email=attempt.learner_email,
                id_factory=self.id_factory,
            )
        except InvalidSubmission as e:
            logger.info(f"Submission refused: {e}")
            return None

        try:
            self.ledger.append(result)
        except StorageWriteError as e:
            logger.error(f"Result {result.id} not recorded, attempt kept open: {e}")
            return None

        self._transition(SessionState.SUBMITTED)
        self.result = result
        self.attempt = None
        return result

    # ----- attempt input -----

    def set_name(self, name: str) -> None:
        self._require_attempt().learner_name = name or ""

    def set_email(self, email: str) -> None:
        self._require_attempt().learner_email = email or ""

    def choose(self, question_id: str, key: str) -> None:
        """Record the chosen option key; a later choice for the same question replaces it."""
        self._require_attempt().answers[question_id] = key

    def attach_upload(self, upload: Optional[UploadRef]) -> None:
        self._require_attempt().upload_ref = upload

    @property
    def answers(self) -> Dict[str, str]:
        return dict(self.attempt.answers) if self.attempt else {}
