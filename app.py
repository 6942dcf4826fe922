"""Evalify student portal: browse tests, attempt one, review results."""
import sys
from pathlib import Path

# Ensure project root is in path
project_root = Path(__file__).resolve().parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import streamlit as st

from db import get_store, is_logged_in, logout
from engine import MAX_SUBJECTIVE_SCORE, UPLOAD_TYPES
from src.evaluator import build_evaluator
from src.ledger import ResultsLedger
from src.models import UploadRef
from src.normalizer import load_tests
from src.scoring import max_mcq_score, max_total_score
from src.session import AttemptSession, SessionState

PAGES = ["Dashboard", "Give Test", "My Results"]

st.set_page_config(page_title="Evalify", layout="wide")
store = get_store()

if not is_logged_in(store):
    st.header("Student Portal")
    st.caption("Please sign in to continue.")
    st.info("Sign in from the login page, then reload.")
    st.stop()

# One ledger + session per browser session
if "attempt_session" not in st.session_state:
    ledger = ResultsLedger(store)
    ledger.load()
    st.session_state["attempt_session"] = AttemptSession(ledger, build_evaluator())
session: AttemptSession = st.session_state["attempt_session"]
ledger = session.ledger

st.sidebar.title("Evalify")
# Allow URL to open a specific page (e.g. after "Attempt Now")
default_page = st.query_params.get("page", "Dashboard")
if default_page not in PAGES:
    default_page = "Dashboard"
page = st.sidebar.radio("Navigate", PAGES, index=PAGES.index(default_page), label_visibility="collapsed")
st.query_params["page"] = page
if "attempt_no" not in st.session_state:
    st.session_state["attempt_no"] = 0
if st.sidebar.button("Logout"):
    logout(store)
    st.session_state.pop("attempt_session", None)
    st.rerun()


def _start(test):
    session.select(test)
    st.session_state["attempt_no"] += 1


def _sync_upload(key):
    # Runs on user interaction only, not when the page is re-rendered
    uploaded = st.session_state.get(key)
    if uploaded is None:
        session.attach_upload(None)
    else:
        session.attach_upload(UploadRef(name=uploaded.name, content_type=uploaded.type, data=uploaded.getvalue()))


# ----- Dashboard -----
if page == "Dashboard":
    st.header("Welcome back")
    st.caption("Start with an available test or review your previous results.")
    if session.state is SessionState.ATTEMPTING:
        st.info(f"Attempt in progress: {session.test.name}. Open Give Test to continue.")
    tests = load_tests(store)
    if not tests:
        st.info("No tests available yet.")
    cols = st.columns(3)
    for i, t in enumerate(tests):
        with cols[i % 3]:
            with st.container(border=True):
                st.subheader(t.name)
                st.caption(f"Duration: {t.duration}")
                if st.button("Attempt Now", key=f"attempt_{i}_{t.id}", type="primary"):
                    _start(t)
                    st.query_params["page"] = "Give Test"
                    st.rerun()

# ----- Give Test -----
elif page == "Give Test":
    test = session.test
    if test is None or session.state is SessionState.BROWSING:
        st.info("Pick a test from the dashboard first.")
        st.stop()
    wkey = f"{test.id}_{st.session_state['attempt_no']}"

    st.header(test.name)

    if session.state is SessionState.ATTEMPTING:
        # Widgets are seeded from the attempt; Streamlit forgets widget state on other pages
        attempt = session.attempt
        st.caption("Enter your details and answer the MCQs below.")
        col1, col2 = st.columns(2)
        with col1:
            session.set_name(st.text_input("Name", value=attempt.learner_name, placeholder="Your Full Name", key=f"name_{wkey}"))
        with col2:
            session.set_email(st.text_input("Email", value=attempt.learner_email, placeholder="your@email.com", key=f"email_{wkey}"))

        for q in test.questions:
            st.subheader(q.prompt)
            labels = {o.key: o.label for o in q.options}
            keys = list(labels)
            chosen = attempt.answers.get(q.id)
            choice = st.radio(
                "Choose one:",
                options=keys,
                format_func=lambda k, labels=labels: labels.get(k, ""),
                index=keys.index(chosen) if chosen in keys else None,
                key=f"q_{wkey}_{q.id}",
                label_visibility="collapsed",
            )
            if choice is not None:
                session.choose(q.id, choice)

        st.subheader("Upload handwritten answer")
        st.caption("Accepted types: " + ", ".join(t.upper() for t in UPLOAD_TYPES))
        upload_key = f"upload_{wkey}"
        st.file_uploader("Answer sheet", type=list(UPLOAD_TYPES), key=upload_key, on_change=_sync_upload, args=(upload_key,))
        if attempt.upload_ref is not None:
            st.caption(f"Selected: {attempt.upload_ref.name}")

        if st.button("Submit", type="primary"):
            if session.submit() is None:
                st.warning("Submission not recorded. Enter your name and email, then submit again.")
            else:
                st.rerun()

    if session.state is SessionState.SUBMITTED and session.result:
        r = session.result
        st.success("Test submitted.")
        st.subheader("Evaluation Result")
        col1, col2, col3 = st.columns(3)
        with col1:
            st.metric("MCQ Score", f"{r.mcq_score} / {max_mcq_score(test)}")
        with col2:
            st.metric("AI Evaluated Subjective", f"{r.subjective_score} / {MAX_SUBJECTIVE_SCORE}")
        with col3:
            st.metric("Total Marks", f"{r.total} / {max_total_score(test)}")

# ----- My Results -----
elif page == "My Results":
    st.header("My Results")
    email_filter = st.text_input("Filter by email", placeholder="your@email.com")
    history = ledger.for_learner(email_filter) if email_filter.strip() else ledger.all()
    if not history:
        st.info("No attempts yet.")
    for r in history:
        with st.container(border=True):
            st.subheader(r.test_name)
            st.caption(r.created_at)
            st.write(f"Name: {r.learner_name} • Email: {r.learner_email}")
            st.write(f"MCQ: {r.mcq_score} • Subjective: {r.subjective_score} • Total: {r.total}")
