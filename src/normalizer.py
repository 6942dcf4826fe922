"""
Test feed normalizer: turns loosely-typed test records from any authoring tool
into canonical Test objects.

Field compatibility:
    test:     id (else "test-{index}"), name, duration (else "30m"),
              questions or mcqs
    question: id (else "q{index}"), made unique within the test, question or q (else "Untitled Question"),
              options as plain strings or {"label": ...} objects,
              correctIndex (number) > answer (string) > "opt0"

normalize() never raises; anything it cannot read degrades to a default.
"""
import json
import logging
from dataclasses import replace
from enum import Enum
from numbers import Real
from typing import Any, Dict, List, Optional, Tuple

from db import TESTS_SLOT, StoreError
from engine import DEFAULT_DURATION, DEFAULT_PROMPT, DEFAULT_TEST_NAME, OPTION_KEY_PREFIX
from src.models import Option, Question, Test

logger = logging.getLogger(__name__)


class OptionShape(Enum):
    TEXT = "text"  # "Paris"
    OBJECT = "object"  # {"label": "Paris", ...}
    UNKNOWN = "unknown"


def option_key(index) -> str:
    return f"{OPTION_KEY_PREFIX}{index}"


def classify_option(raw: Any) -> Tuple[OptionShape, str]:
    """Return (shape, label) for one upstream option."""
    if isinstance(raw, str):
        return OptionShape.TEXT, raw
    if isinstance(raw, dict):
        label = raw.get("label")
        return OptionShape.OBJECT, label if isinstance(label, str) else ("" if label is None else str(label))
    return OptionShape.UNKNOWN, "" if raw is None else str(raw)


def _options(raw_options: Any) -> Tuple[Option, ...]:
    if not isinstance(raw_options, list):
        return ()
    options = []
    for i, raw in enumerate(raw_options):
        shape, label = classify_option(raw)
        if shape is OptionShape.UNKNOWN:
            logger.warning(f"Option {i} has unexpected type {type(raw).__name__}; using {label!r} as label")
        options.append(Option(key=option_key(i), label=label))
    return tuple(options)


def _index_key(value: Any) -> Optional[str]:
    # bool is an int subclass but never an index
    if isinstance(value, bool) or not isinstance(value, Real):
        return None
    if float(value).is_integer():
        return option_key(int(value))
    return option_key(value)


def resolve_correct_key(raw: Dict, options: Tuple[Option, ...]) -> str:
    """
    Pick the correct option key for a question record.

    Priority: numeric correctIndex, then a string answer used as a key, then "opt0".
    An index that names no option gives way to the answer; an answer equal to an
    option label maps to that option; anything else falls back to "opt0".
    """
    keys = [o.key for o in options]
    labels = {o.key: o.label for o in options}
    by_index = _index_key(raw.get("correctIndex"))
    answer = raw.get("answer")
    by_answer = answer if isinstance(answer, str) else None

    if by_index is not None and by_answer is not None and by_answer not in (by_index, labels.get(by_index)):
        logger.warning(
            f"correctIndex ({by_index}) and answer ({by_answer!r}) disagree; using correctIndex"
        )

    candidates = [k for k in (by_index, by_answer) if k is not None]
    if not candidates or not options:
        return option_key(0)
    for key in candidates:
        if key in keys:
            return key

    if by_answer is not None:
        for o in options:
            if o.label == by_answer:
                return o.key
    logger.warning(f"Correct answer {candidates[0]!r} matches no option in {keys}; defaulting to {option_key(0)}")
    return option_key(0)


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def normalize_question(raw: Any, index: int) -> Question:
    if not isinstance(raw, dict):
        logger.warning(f"Question {index} is not an object; using defaults")
        raw = {}
    options = _options(raw.get("options"))
    prompt = _text(raw.get("question"))
    if prompt is None:
        prompt = _text(raw.get("q"))
    return Question(
        id=_text(raw.get("id")) or f"q{index}",
        prompt=prompt if prompt is not None else DEFAULT_PROMPT,
        options=options,
        correct_key=resolve_correct_key(raw, options),
    )


def _unique_ids(questions: List[Question]) -> Tuple[Question, ...]:
    """Question ids must be unique within a test; later clashes get a positional suffix."""
    seen = set()
    out = []
    for i, q in enumerate(questions):
        qid = q.id
        if qid in seen:
            n = i
            qid = f"{q.id}-{n}"
            while qid in seen:
                n += 1
                qid = f"{q.id}-{n}"
            logger.warning(f"Question {i} reuses id {q.id!r}; renamed to {qid!r}")
            q = replace(q, id=qid)
        seen.add(qid)
        out.append(q)
    return tuple(out)


def normalize_test(raw: Any, index: int) -> Test:
    if not isinstance(raw, dict):
        logger.warning(f"Test record {index} is not an object; using defaults")
        raw = {}
    raw_questions = raw.get("questions")
    if raw_questions is None:
        raw_questions = raw.get("mcqs")
    if not isinstance(raw_questions, list):
        raw_questions = []
    return Test(
        id=_text(raw.get("id")) or f"test-{index}",
        name=_text(raw.get("name")) or DEFAULT_TEST_NAME,
        duration=_text(raw.get("duration")) or DEFAULT_DURATION,
        questions=_unique_ids([normalize_question(q, i) for i, q in enumerate(raw_questions)]),
    )


def normalize(raw: Any) -> List[Test]:
    """Normalize a test feed. Order is preserved; duplicates are left to the caller."""
    if not isinstance(raw, list):
        if raw is not None:
            logger.warning(f"Test feed is a {type(raw).__name__}, expected a list; treating as empty")
        return []
    return [normalize_test(t, i) for i, t in enumerate(raw)]


def normalize_json(text: Optional[str]) -> List[Test]:
    """Decode a stored feed and normalize it. Undecodable content yields []."""
    if not text:
        return []
    try:
        raw = json.loads(text)
    except (ValueError, RecursionError, TypeError) as e:
        logger.warning(f"Test feed is not valid JSON ({e}); treating as empty")
        return []
    return normalize(raw)


def load_tests(store, slot: Optional[str] = None) -> List[Test]:
    """Read the published test feed from the store."""
    try:
        text = store.get_item(slot or TESTS_SLOT)
    except StoreError as e:
        logger.error(f"Could not read test feed: {e}")
        return []
    tests = normalize_json(text)
    logger.info(f"Loaded {len(tests)} tests")
    return tests
