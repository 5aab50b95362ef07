"""PrepPro: job test preparation. Streamlit shell and user pages."""
import logging
import sys
from pathlib import Path

# Ensure project root is in path
project_root = Path(__file__).resolve().parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import streamlit as st
import streamlit.components.v1 as components

import admin
import config
from db import get_database, get_session_store
from engine import LOW_TIME_SECONDS, NOTIFICATION_POLL_SECONDS, PASS_PERCENTAGE, QUESTIONS_PER_PAGE
from src import access
from src.engine import ENDED_FOR_CHEATING, IN_PROGRESS, PAUSED, TestSession, page_count, page_slice, subject_breakdown, summarize_results
from src.errors import AccessDenied, PrepProError
from src.models import ACCESS_REQUESTED, User
from src.report import build_result_pdf, pdf_filename
from src.session_store import is_resumable

logging.basicConfig(level=config.LOG_LEVEL, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)

st.set_page_config(page_title="PrepPro", layout="wide")

USER_PAGES = ["Dashboard", "Browse Tests", "My Results", "Notifications"]
ADMIN_PAGES = ["Categories", "Tests", "Questions", "Users", "Browse Tests", "Notifications"]

# Anti-cheat: report tab switches / window blur by clicking the hidden focus_lost button
FOCUS_GUARD_JS = """
<script>
const parentWindow = window.parent;
const doc = parentWindow.document;
if (!parentWindow.__prepProFocusGuard) {
  parentWindow.__prepProFocusGuard = true;
  const report = () => {
    const button = doc.querySelector('.st-key-focus_lost button');
    if (button) { button.click(); }
  };
  doc.addEventListener('visibilitychange', () => { if (doc.hidden) { report(); } });
  parentWindow.addEventListener('blur', report);
}
</script>
"""

DARK_CSS = """
<style>
.stApp, [data-testid="stSidebar"], [data-testid="stHeader"] { background-color: #0f172a; color: #e2e8f0; }
.stApp p, .stApp label, .stApp h1, .stApp h2, .stApp h3, .stApp span { color: #e2e8f0; }
[data-testid="stExpander"] { background-color: #1e293b; border-color: #334155; }
</style>
"""

HIDE_FOCUS_BUTTON_CSS = "<style>.st-key-focus_lost { display: none; }</style>"


def current_user() -> User | None:
    return st.session_state.get("user")


def go(page: str | None = None, flow: str | None = None, **state):
    """Switch page (sidebar) or flow (instructions/test/result) and rerun."""
    if page is not None:
        st.session_state["nav"] = page
    st.session_state["flow"] = flow
    st.session_state.update(state)
    st.rerun()


def leave_test():
    """Sidebar navigation away from a running test pauses it; it can be resumed from the dashboard."""
    session = st.session_state.pop("test_session", None)
    if session is not None and session.status == IN_PROGRESS:
        session.pause()
    st.session_state["flow"] = None


def sign_out():
    for key in ("user", "flow", "test_session", "active_test", "result_id", "confirm_submit"):
        st.session_state.pop(key, None)


# ----- Auth -----

def render_auth():
    st.title("PrepPro")
    st.caption("Prepare for job tests with timed practice exams.")
    sign_in_tab, sign_up_tab = st.tabs(["Sign in", "Sign up"])
    db = get_database()
    with sign_in_tab:
        with st.form("sign_in"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            if st.form_submit_button("Sign in", type="primary"):
                user = db.sign_in_user(email.strip(), password)
                if user is None:
                    st.error("Invalid email or password.")
                else:
                    logger.info("User %s signed in", user.email)
                    go(page=ADMIN_PAGES[0] if user.is_admin else USER_PAGES[0], user=user)
    with sign_up_tab:
        with st.form("sign_up"):
            name = st.text_input("Full name")
            email = st.text_input("Email", key="sign_up_email")
            password = st.text_input("Password", type="password", key="sign_up_password")
            if st.form_submit_button("Create account", type="primary"):
                if not name.strip() or not email.strip() or not password:
                    st.error("Name, email and password are required.")
                else:
                    user = db.sign_up_user(name.strip(), email.strip(), password)
                    go(page=USER_PAGES[0], user=user)


# ----- Sidebar -----

@st.fragment(run_every=NOTIFICATION_POLL_SECONDS)
def notification_badge(user: User):
    try:
        unread = sum(1 for n in get_database().fetch_notifications(user.id) if not n.is_read)
    except Exception as e:
        logger.error(f"Error polling notifications: {e}")
        return
    if unread:
        st.warning(f"🔔 {unread} unread notification{'s' if unread != 1 else ''}")
    else:
        st.caption("🔔 No new notifications")


def render_sidebar(user: User) -> str:
    st.sidebar.title("PrepPro")
    st.sidebar.caption(f"{user.name} · {'Admin' if user.is_admin else 'Candidate'}")
    pages = ADMIN_PAGES if user.is_admin else USER_PAGES
    if st.session_state.get("nav") not in pages:
        st.session_state["nav"] = pages[0]
    page = st.sidebar.radio("Navigate", pages, key="nav", label_visibility="collapsed", on_change=leave_test)
    with st.sidebar:
        notification_badge(user)
    st.sidebar.toggle("Dark mode", key="dark_mode")
    if st.sidebar.button("Sign out", use_container_width=True):
        sign_out()
        st.rerun()
    return page


# ----- Dashboard -----

def render_dashboard(user: User):
    st.header(f"Welcome, {user.name}")
    db = get_database()
    store = get_session_store()
    tests = db.fetch_tests()
    titles = {t.id: t.title for t in tests}

    paused = store.find_paused(user.id, tests)
    if paused is not None:
        st.info(f"You have an unfinished attempt at **{paused.title}**.")
        if st.button("Resume Test", type="primary"):
            resume_session(user, paused)

    results = db.fetch_results_by_user_id(user.id)
    stats = summarize_results(results)
    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("Tests taken", stats["total_attempts"])
    with col2:
        st.metric("Average score", f"{stats['average_score']}%")
    with col3:
        st.metric("Pass rate", f"{stats['pass_rate']}%", help=f"Pass mark is {PASS_PERCENTAGE}%")
    with col4:
        st.metric("Best score", f"{stats['best_score']}%")

    st.subheader("Recent results")
    if not results:
        st.caption("No tests taken yet. Open Browse Tests to get started.")
    for result in results[:5]:
        render_result_row(result, titles.get(result.test_id, "Deleted test"))


def render_result_row(result, title: str):
    col1, col2, col3 = st.columns([4, 2, 1])
    with col1:
        st.write(f"**{title}**")
        if result.date:
            st.caption(result.date[:16].replace("T", " "))
    with col2:
        status = "✅ Passed" if result.percentage >= PASS_PERCENTAGE else "❌ Not passed"
        st.write(f"{result.score}/{result.total_questions} ({result.percentage}%) {status}")
    with col3:
        if st.button("View", key=f"view_result_{result.id}"):
            go(flow="result", result_id=result.id)


def render_my_results(user: User):
    st.header("My Results")
    db = get_database()
    titles = {t.id: t.title for t in db.fetch_tests()}
    results = db.fetch_results_by_user_id(user.id)
    if not results:
        st.caption("No results yet.")
    for result in results:
        render_result_row(result, titles.get(result.test_id, "Deleted test"))


# ----- Browse (access workflow) -----

def render_browse(user: User):
    st.header("Browse Tests")
    db = get_database()
    categories = db.fetch_categories()
    tests = db.fetch_tests()
    category_access = db.fetch_category_access()
    test_access = db.fetch_test_access()
    query = st.text_input("Search", placeholder="Search categories or tests")
    if query:
        names = {c.id for c in categories if query.lower() in c.name.lower()}
        names |= {t.category_id for t in tests if query.lower() in t.title.lower()}
        categories = [c for c in categories if c.id in names]

    if not categories:
        st.caption("No categories available.")
    for category in categories:
        status = access.category_status(category_access, user.id, category.id)
        if not access.can_open_category(user, category, category_access):
            col1, col2 = st.columns([4, 1])
            with col1:
                st.subheader(f"🔒 {category.name}")
            with col2:
                if status == ACCESS_REQUESTED:
                    st.caption("Access requested")
                elif st.button("Request Access", key=f"req_cat_{category.id}"):
                    access.request_category_access(db, user, category, db.fetch_admins(), status)
                    st.toast("Request sent to the admins.")
                    st.rerun()
            continue

        with st.expander(category.name, expanded=bool(query)):
            category_tests = [t for t in tests if t.category_id == category.id]
            if not category_tests:
                st.caption("No tests in this category yet.")
            for test in category_tests:
                col1, col2 = st.columns([4, 1])
                with col1:
                    st.write(f"**{test.title}**")
                    st.caption(f"{test.duration} minutes · {test.total_questions} questions")
                with col2:
                    t_status = access.test_status(test_access, user.id, test.id)
                    if access.can_take_test(user, test, category_access, test_access):
                        if st.button("Start", key=f"start_{test.id}", type="primary"):
                            go(flow="instructions", active_test=test)
                    elif t_status == ACCESS_REQUESTED:
                        st.caption("Access requested")
                    elif st.button("Request Access", key=f"req_test_{test.id}"):
                        access.request_test_access(db, user, test, db.fetch_admins(), t_status)
                        st.toast("Request sent to the admins.")
                        st.rerun()


# ----- Notifications -----

def render_notifications(user: User):
    st.header("Notifications")
    db = get_database()
    notifications = db.fetch_notifications(user.id)
    if not notifications:
        st.caption("You have no notifications.")
    for n in notifications:
        marker = "" if n.is_read else "🆕 "
        st.write(f"{marker}**{n.title}**")
        st.caption(f"{n.message} · {(n.created_at or '')[:16].replace('T', ' ')}")
    db.mark_notifications_read([n.id for n in notifications if not n.is_read])


# ----- Test flow -----

def resume_session(user: User, test):
    access.require_test_access(get_database(), user, test)
    store = get_session_store()
    saved = store.load(user.id, test.id)
    if not is_resumable(saved):
        st.warning("That attempt can no longer be resumed.")
        return
    session = TestSession.restore(user.id, test, saved, store=store)
    if session.status == PAUSED:
        session.resume()
    go(flow="test", active_test=test, test_session=session, test_page=0)


def render_instructions(user: User):
    test = st.session_state["active_test"]
    db = get_database()
    access.require_test_access(db, user, test)
    st.header(test.title)
    st.write(f"**Duration:** {test.duration} minutes")
    st.write(f"**Questions:** {test.total_questions}")
    st.markdown(
        "- The test is submitted automatically when the timer reaches zero.\n"
        "- Do not switch tabs or windows: leaving the page ends the test without a result.\n"
        "- You can pause and come back later from the dashboard.\n"
        f"- {QUESTIONS_PER_PAGE} questions are shown per page; you may move between pages freely.\n"
        f"- The pass mark is {PASS_PERCENTAGE}%."
    )
    store = get_session_store()
    saved = store.load(user.id, test.id)
    col1, col2 = st.columns(2)
    with col1:
        if is_resumable(saved):
            if st.button("Resume Test", type="primary", use_container_width=True):
                resume_session(user, test)
        elif st.button("Start Test", type="primary", use_container_width=True):
            session = TestSession.start(
                user.id,
                test,
                db.fetch_questions_by_test_id(test.id),
                db.fetch_test_subjects(test.id),
                db.get_used_question_ids(user.id, test.id),
                store=store,
            )
            if not session.questions:
                store.clear(user.id, test.id)
                st.error("This test has no questions yet.")
            else:
                go(flow="test", test_session=session, test_page=0, confirm_submit=False)
    with col2:
        if st.button("Back", use_container_width=True):
            go(flow=None)


def finish(session: TestSession, result):
    db = get_database()
    try:
        saved = db.create_result(result)
        db.track_question_usage(session.user_id, session.test.id, session.questions)
    except Exception:
        logger.exception("Could not save result for test %s", session.test.id)
        # the saved copy is still on disk, so the dashboard offers Resume
        st.session_state.pop("test_session", None)
        st.session_state["flow"] = None
        raise
    session.discard()
    st.session_state.pop("test_session", None)
    st.session_state["flow"] = "result"
    st.session_state["result_id"] = saved.id


@st.fragment(run_every=1)
def render_timer(session: TestSession):
    result = session.tick()
    if result is not None:
        finish(session, result)
        st.rerun(scope="app")
    if session.status != IN_PROGRESS:
        return
    m, s = divmod(session.seconds_left, 60)
    label = f"{m}:{s:02d}"
    if session.seconds_left <= LOW_TIME_SECONDS:
        st.error(f"⏰ Time left: {label}")
    else:
        st.metric("Time left", label)
    n = len(session.questions)
    st.progress(session.answered_count / n if n else 0)
    st.caption(f"{session.answered_count} of {n} answered")


def _on_answer(session: TestSession, question_id: str, key: str):
    if session.status == IN_PROGRESS and st.session_state.get(key) is not None:
        session.select_answer(question_id, st.session_state[key])


def render_test():
    session: TestSession = st.session_state.get("test_session")
    if session is None:
        go(flow=None)
    test = session.test

    if session.status == IN_PROGRESS:
        st.markdown(HIDE_FOCUS_BUTTON_CSS, unsafe_allow_html=True)
        if st.button("focus lost", key="focus_lost"):
            session.report_focus_lost()
        components.html(FOCUS_GUARD_JS, height=0)

    if session.status == ENDED_FOR_CHEATING:
        st.error("Test Ended: Due to tab/window switching, your test has been ended.")
        if st.button("Back to Dashboard", type="primary"):
            st.session_state.pop("test_session", None)
            go(flow=None)
        return

    if session.status == PAUSED:
        st.header(test.title)
        st.info(f"⏸ Test paused with {session.seconds_left // 60}:{session.seconds_left % 60:02d} left.")
        col1, col2 = st.columns(2)
        with col1:
            if st.button("Resume", type="primary", use_container_width=True):
                session.resume()
                st.rerun()
        with col2:
            if st.button("Go to Dashboard", use_container_width=True):
                st.session_state.pop("test_session", None)
                go(flow=None)
        return

    with st.sidebar:
        render_timer(session)

    st.header(test.title)
    pages = page_count(len(session.questions))
    page = min(st.session_state.get("test_page", 0), pages - 1)
    offset = page * QUESTIONS_PER_PAGE
    for number, question in enumerate(page_slice(session.questions, page), start=offset + 1):
        key = f"answer_{test.id}_{question.id}"
        st.markdown(f"**{number}. {question.question_text}**")
        st.radio(
            f"Question {number}",
            range(len(question.options)),
            index=session.selected_for(question.id),
            format_func=lambda i, opts=question.options: f"{'ABCD'[i] if i < 4 else i + 1}. {opts[i]}",
            key=key,
            on_change=_on_answer,
            args=(session, question.id, key),
            label_visibility="collapsed",
        )
        st.divider()

    col1, col2, col3 = st.columns([1, 2, 1])
    with col1:
        if st.button("Previous", disabled=page == 0):
            st.session_state["test_page"] = page - 1
            st.rerun()
    with col2:
        st.caption(f"Page {page + 1} of {pages}")
    with col3:
        if st.button("Next", disabled=page >= pages - 1):
            st.session_state["test_page"] = page + 1
            st.rerun()

    col1, col2 = st.columns(2)
    with col1:
        if st.button("Pause", use_container_width=True):
            session.pause()
            st.rerun()
    with col2:
        if st.button("Submit Test", type="primary", use_container_width=True):
            st.session_state["confirm_submit"] = True
    if st.session_state.get("confirm_submit"):
        st.warning("Are you sure you want to end and submit the test?")
        yes, no = st.columns(2)
        with yes:
            if st.button("Yes, submit", type="primary"):
                st.session_state["confirm_submit"] = False
                finish(session, session.submit())
                st.rerun()
        with no:
            if st.button("Cancel"):
                st.session_state["confirm_submit"] = False
                st.rerun()


def render_result(user: User):
    db = get_database()
    result = db.fetch_result(st.session_state.get("result_id"))
    if result is None:
        st.error("Result not found.")
        return
    if result.user_id != user.id and not user.is_admin:
        raise AccessDenied("You can only view your own results.")
    test = next((t for t in db.fetch_tests() if t.id == result.test_id), None)
    title = test.title if test else "Deleted test"
    owner = user if result.user_id == user.id else next((u for u in db.fetch_users() if u.id == result.user_id), None)

    st.header(f"Results: {title}")
    passed = result.percentage >= PASS_PERCENTAGE
    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Score", f"{result.score}/{result.total_questions}")
    with col2:
        st.metric("Percentage", f"{result.percentage}%")
    with col3:
        st.metric("Status", "Passed" if passed else "Not passed")

    breakdown = subject_breakdown(result)
    if len(breakdown) > 1:
        st.subheader("By subject")
        for subject, counts in breakdown.items():
            st.write(f"{subject}: {counts['correct']}/{counts['total']}")

    col1, col2, col3 = st.columns(3)
    with col1:
        st.download_button(
            "Download PDF",
            data=build_result_pdf(result, title, owner.name if owner else ""),
            file_name=pdf_filename(title),
            mime="application/pdf",
        )
    with col2:
        st.download_button(
            "Download question sheet",
            data=build_result_pdf(result, title, show_answers=False),
            file_name=pdf_filename(title).replace("_results", "_questions"),
            mime="application/pdf",
        )
    with col3:
        if st.button("Back"):
            go(flow=None)

    st.subheader("Review")
    for number, question in enumerate(result.questions, start=1):
        selected = result.selected_for(question.id)
        mark = "✅" if selected == question.correct_answer else "❌"
        st.markdown(f"{mark} **{number}. {question.question_text}**")
        for i, option in enumerate(question.options):
            if i == question.correct_answer:
                st.success(f"{option} (correct answer)")
            elif i == selected:
                st.error(f"{option} (your answer)")
            else:
                st.write(option)
        if selected is None:
            st.caption("Not answered")


# ----- Main -----

user = current_user()
if user is None:
    try:
        render_auth()
    except Exception as e:
        logger.exception("Auth failed")
        st.error(f"Could not reach the database. Check .env (SUPABASE_URL, SUPABASE_KEY). {e}")
    st.stop()

page = render_sidebar(user)
if st.session_state.get("dark_mode"):
    st.markdown(DARK_CSS, unsafe_allow_html=True)

flow = st.session_state.get("flow")
try:
    if flow == "instructions":
        render_instructions(user)
    elif flow == "test":
        render_test()
    elif flow == "result":
        render_result(user)
    elif page == "Dashboard":
        render_dashboard(user)
    elif page == "Browse Tests":
        render_browse(user)
    elif page == "My Results":
        render_my_results(user)
    elif page == "Notifications":
        render_notifications(user)
    else:
        admin.render(page, user)
except PrepProError as e:
    st.error(str(e))
except Exception as e:
    logger.exception("Page %s failed", page)
    st.error(f"Something went wrong: {e}")
