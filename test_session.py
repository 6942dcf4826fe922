"""Attempt session state machine."""
import pytest

from src.evaluator import PlaceholderEvaluator
from src.ledger import ResultsLedger
from src.models import UploadRef
from src.session import AttemptSession, SessionState, SessionStateError


class RecordingEvaluator:
    def __init__(self, score=14):
        self.score = score
        self.calls = []

    def evaluate(self, upload, test_id, learner_email):
        self.calls.append((upload, test_id, learner_email))
        return self.score


@pytest.fixture
def session(ledger, id_factory):
    return AttemptSession(ledger, PlaceholderEvaluator(), id_factory=id_factory)


def fill(session, name="Ada", email="ada@x.com"):
    session.set_name(name)
    session.set_email(email)


def test_starts_browsing(session):
    assert session.state is SessionState.BROWSING
    assert session.test is None


def test_select_enters_attempting(session, two_question_test):
    session.select(two_question_test)
    assert session.state is SessionState.ATTEMPTING
    assert session.attempt.test is two_question_test


def test_empty_name_refused(session, two_question_test, ledger):
    session.select(two_question_test)
    fill(session, name="")
    session.choose("q1", "opt0")
    assert session.submit() is None
    assert session.state is SessionState.ATTEMPTING
    assert session.answers == {"q1": "opt0"}
    assert ledger.all() == []


def test_refusal_does_not_call_evaluator(ledger, two_question_test):
    grader = RecordingEvaluator()
    session = AttemptSession(ledger, grader)
    session.select(two_question_test)
    fill(session, email="  ")
    assert session.submit() is None
    assert grader.calls == []


def test_submit_scores_and_records(session, two_question_test, ledger):
    session.select(two_question_test)
    fill(session)
    session.choose("q1", "opt0")
    session.choose("q2", "opt0")
    result = session.submit()
    assert result is not None
    assert (result.mcq_score, result.subjective_score, result.total) == (1, 14, 15)
    assert ledger.all()[0].id == result.id
    assert session.state is SessionState.SUBMITTED
    assert session.result == result
    assert session.attempt is None


def test_reselect_resets_fields(session, two_question_test):
    session.select(two_question_test)
    fill(session)
    session.choose("q1", "opt1")
    session.attach_upload(UploadRef(name="sheet.png"))
    session.select(two_question_test)
    assert session.attempt.learner_name == ""
    assert session.attempt.learner_email == ""
    assert session.answers == {}
    assert session.attempt.upload_ref is None


def test_select_after_submit_starts_fresh(session, two_question_test):
    session.select(two_question_test)
    fill(session)
    session.submit()
    session.select(two_question_test)
    assert session.state is SessionState.ATTEMPTING
    assert session.result is None
    assert session.answers == {}


def test_browse_keeps_fields(session, two_question_test):
    session.select(two_question_test)
    fill(session)
    session.choose("q1", "opt0")
    session.browse()
    assert session.state is SessionState.BROWSING
    assert session.attempt.learner_name == "Ada"
    assert session.attempt.answers == {"q1": "opt0"}


def test_input_outside_attempt_rejected(session, two_question_test):
    with pytest.raises(SessionStateError):
        session.choose("q1", "opt0")
    with pytest.raises(SessionStateError):
        session.submit()
    session.select(two_question_test)
    fill(session)
    session.submit()
    with pytest.raises(SessionStateError):
        session.set_name("Bob")
    with pytest.raises(SessionStateError):
        session.submit()


def test_upload_passed_to_evaluator(ledger, two_question_test):
    grader = RecordingEvaluator(score=9)
    session = AttemptSession(ledger, grader)
    session.select(two_question_test)
    fill(session, email=" ada@x.com ")
    upload = UploadRef(name="answer.pdf", content_type="application/pdf", data=b"%PDF")
    session.attach_upload(upload)
    result = session.submit()
    assert grader.calls == [(upload, "t1", "ada@x.com")]
    assert result.subjective_score == 9


def test_storage_failure_keeps_attempt_open(failing_store, two_question_test):
    ledger = ResultsLedger(failing_store)
    ledger.load()
    session = AttemptSession(ledger, PlaceholderEvaluator())
    session.select(two_question_test)
    fill(session)
    assert session.submit() is None
    assert session.state is SessionState.ATTEMPTING
    assert session.attempt.learner_name == "Ada"
    assert ledger.all() == []
