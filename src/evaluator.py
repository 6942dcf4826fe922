"""
Upload evaluation: the external grader that turns a handwritten answer file into
an integer subjective score.
"""
import logging
import os
from typing import Optional

import requests
from dotenv import load_dotenv

from engine import PLACEHOLDER_SUBJECTIVE_SCORE
from src.models import UploadRef

logger = logging.getLogger(__name__)

load_dotenv()


class PlaceholderEvaluator:
    """Returns the same score for every attempt, upload or not."""

    def __init__(self, score: int = PLACEHOLDER_SUBJECTIVE_SCORE):
        self.score = score

    def evaluate(self, upload: Optional[UploadRef], test_id: str, learner_email: str) -> int:
        return self.score


class HttpEvaluator:
    """
    Posts the upload to a grading service and reads {"score": int} back.

    No upload scores 0. Any transport or payload problem is logged and scores
    fallback_score, so a grader outage never blocks a submission.
    """

    def __init__(self, url: str, timeout: float = 30.0, fallback_score: int = 0, session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.fallback_score = fallback_score
        self.session = session or requests.Session()

    def evaluate(self, upload: Optional[UploadRef], test_id: str, learner_email: str) -> int:
        if upload is None:
            return 0
        files = None
        if upload.data is not None:
            files = {"file": (upload.name, upload.data, upload.content_type or "application/octet-stream")}
        form = {"test_id": test_id, "learner_email": learner_email, "file_name": upload.name}
        try:
            resp = self.session.post(self.url, data=form, files=files, timeout=self.timeout)
            resp.raise_for_status()
            score = resp.json()["score"]
            if isinstance(score, bool):
                raise ValueError(f"score must be a number, got {score!r}")
            return int(score)
        except requests.RequestException as e:
            logger.error(f"Upload evaluation failed for {upload.name}: {e}")
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            logger.error(f"Upload evaluation returned an unusable payload for {upload.name}: {e!r}")
        return self.fallback_score


def build_evaluator():
    """HttpEvaluator when EVALIFY_EVALUATOR_URL is set, else the placeholder."""
    url = os.environ.get("EVALIFY_EVALUATOR_URL")
    if url:
        timeout = float(os.environ.get("EVALIFY_EVALUATOR_TIMEOUT") or 30)
        logger.info(f"Using HTTP upload evaluator at {url}")
        return HttpEvaluator(url, timeout=timeout)
    return PlaceholderEvaluator()
