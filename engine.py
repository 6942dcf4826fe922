"""Pure exam constants: defaults, score maxima, storage slots. No UI."""
# Scoring: each MCQ answered with the correct key +1, anything else 0.
# Subjective part is graded elsewhere and added on top.

MCQ_CORRECT_SCORE = 1
MAX_SUBJECTIVE_SCORE = 20  # display convention only, never enforced
PLACEHOLDER_SUBJECTIVE_SCORE = 14

DEFAULT_DURATION = "30m"
DEFAULT_TEST_NAME = "Untitled Test"
DEFAULT_PROMPT = "Untitled Question"
OPTION_KEY_PREFIX = "opt"

UPLOAD_TYPES = ("jpg", "jpeg", "png", "pdf")
