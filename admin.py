"""Admin console pages: categories, tests, questions/subjects, users and access."""
import logging

import streamlit as st

from db import get_database
from engine import ADMIN_PAGE_SIZE, DEFAULT_SUBJECT, DIFFICULTIES, OPTIONS_PER_QUESTION, PASS_PERCENTAGE
from src import access, catalog
from src.bulk_upload import parse_upload
from src.errors import PrepProError
from src.mcq_generator import MAX_QUESTIONS, generate_questions
from src.models import ACCESS_APPROVED, ACCESS_LOCKED, ACCESS_REQUESTED, Category, Question, User

logger = logging.getLogger(__name__)

STATUS_ICONS = {ACCESS_LOCKED: "🔒", ACCESS_REQUESTED: "⏳", ACCESS_APPROVED: "✅"}


def _pager(items, key: str):
    """Slice items for the current admin page and draw Previous/Next controls."""
    page = st.session_state.get(key, 0)
    shown, page, pages = catalog.paginate(items, page, ADMIN_PAGE_SIZE)
    if pages > 1:
        col1, col2, col3 = st.columns([1, 2, 1])
        with col1:
            if st.button("Previous", key=f"{key}_prev", disabled=page == 0):
                st.session_state[key] = page - 1
                st.rerun()
        with col2:
            st.caption(f"Page {page + 1} of {pages} · {len(items)} items")
        with col3:
            if st.button("Next", key=f"{key}_next", disabled=page >= pages - 1):
                st.session_state[key] = page + 1
                st.rerun()
    return shown


def _show_result(result_id: str):
    st.session_state["flow"] = "result"
    st.session_state["result_id"] = result_id
    st.rerun()


# ----- Categories -----

def render_categories():
    st.header("Categories")
    db = get_database()
    categories = db.fetch_categories()

    with st.form("add_category", clear_on_submit=True):
        name = st.text_input("New category name")
        if st.form_submit_button("Add Category", type="primary"):
            db.create_category(catalog.validate_category_name(name, categories))
            st.rerun()

    query = st.text_input("Search categories", key="category_search")
    for category in _pager(catalog.search_categories(categories, query), "category_page"):
        with st.expander(category.name):
            new_name = st.text_input("Name", value=category.name, key=f"cat_name_{category.id}")
            col1, col2 = st.columns(2)
            with col1:
                if st.button("Save", key=f"cat_save_{category.id}"):
                    clean = catalog.validate_category_name(new_name, categories, editing_id=category.id)
                    db.update_category(Category(category.id, clean))
                    st.rerun()
            with col2:
                if st.button("Delete", key=f"cat_del_{category.id}"):
                    st.session_state["confirm_delete_category"] = category.id
            if st.session_state.get("confirm_delete_category") == category.id:
                st.warning("Delete this category and all of its tests and questions?")
                if st.button("Yes, delete", key=f"cat_del_yes_{category.id}", type="primary"):
                    db.delete_category(category.id)
                    st.session_state.pop("confirm_delete_category")
                    st.rerun()


# ----- Tests -----

def _test_form(key: str, categories, tests, test=None):
    names = {c.id: c.name for c in categories}
    ids = list(names)
    with st.form(key, clear_on_submit=test is None):
        title = st.text_input("Title", value=test.title if test else "")
        category_id = st.selectbox(
            "Category",
            ids,
            index=ids.index(test.category_id) if test and test.category_id in ids else None,
            format_func=lambda i: names[i],
        )
        col1, col2 = st.columns(2)
        with col1:
            duration = st.number_input("Duration (minutes)", min_value=1, value=test.duration if test else 30)
        with col2:
            total = st.number_input("Total questions", min_value=1, value=test.total_questions if test else 10)
        if st.form_submit_button("Save Test" if test else "Add Test", type="primary"):
            return catalog.validate_test(title, category_id, duration, total, tests, editing_id=test.id if test else None)
    return None


def render_tests():
    st.header("Tests")
    db = get_database()
    categories = db.fetch_categories()
    tests = db.fetch_tests()
    names = {c.id: c.name for c in categories}

    with st.expander("Add Test", expanded=not tests):
        if not categories:
            st.caption("Create a category first.")
        else:
            new_test = _test_form("add_test", categories, tests)
            if new_test is not None:
                db.create_test(new_test)
                st.rerun()

    query = st.text_input("Search tests", key="test_search")
    for test in _pager(catalog.search_tests(tests, categories, query), "test_page_admin"):
        with st.expander(f"{test.title} · {names.get(test.category_id, '?')}"):
            st.caption(f"{test.duration} minutes · {test.total_questions} questions")
            updated = _test_form(f"edit_test_{test.id}", categories, tests, test)
            if updated is not None:
                db.update_test(updated)
                st.rerun()
            col1, col2 = st.columns(2)
            with col1:
                if st.button("Approve for all users", key=f"toggle_all_{test.id}"):
                    count = access.approve_test_for_all(db, test, db.fetch_users())
                    st.success(f"Approved {test.title} for {count} users.")
            with col2:
                if st.button("Delete", key=f"test_del_{test.id}"):
                    db.delete_test(test.id)
                    st.rerun()


# ----- Questions & subjects -----

def _question_fields(key: str, question: Question, subjects):
    text = st.text_area("Question", value=question.question_text, key=f"{key}_text")
    options = [
        st.text_input(f"Option {i + 1}", value=question.options[i] if i < len(question.options) else "", key=f"{key}_opt{i}")
        for i in range(OPTIONS_PER_QUESTION)
    ]
    correct = st.radio(
        "Correct answer",
        range(OPTIONS_PER_QUESTION),
        index=question.correct_answer if 0 <= question.correct_answer < OPTIONS_PER_QUESTION else 0,
        format_func=lambda i: f"Option {i + 1}",
        horizontal=True,
        key=f"{key}_correct",
    )
    subject_names = [DEFAULT_SUBJECT] + [s.subject_name for s in subjects if s.subject_name != DEFAULT_SUBJECT]
    if question.subject not in subject_names:
        subject_names.append(question.subject)
    col1, col2, col3 = st.columns(3)
    with col1:
        subject = st.selectbox("Subject", subject_names, index=subject_names.index(question.subject), key=f"{key}_subject")
    with col2:
        difficulty = st.selectbox("Difficulty", DIFFICULTIES, index=DIFFICULTIES.index(question.difficulty) if question.difficulty in DIFFICULTIES else 1, key=f"{key}_difficulty")
    with col3:
        position = st.number_input("Position", min_value=1, value=question.position or 1, key=f"{key}_position")
    return Question(
        id=question.id,
        test_id=question.test_id,
        question_text=text,
        options=options,
        correct_answer=correct,
        subject=subject,
        position=int(position),
        difficulty=difficulty,
    )


def _render_subjects(db, test, subjects):
    st.caption("Questions are drawn per subject, in this order, up to each subject's count.")
    for index, subject in enumerate(subjects):
        available = db.fetch_question_count_by_subject(test.id, subject.subject_name)
        col1, col2, col3, col4 = st.columns([4, 2, 1, 1])
        with col1:
            st.write(f"**{subject.display_order}. {subject.subject_name}**")
        with col2:
            st.caption(f"{subject.question_count} per test · {available} in bank")
        with col3:
            if st.button("↑", key=f"sub_up_{subject.id}", disabled=index == 0):
                db.reorder_test_subjects(test.id, catalog.move_subject(subjects, index, index - 1))
                st.rerun()
        with col4:
            if st.button("↓", key=f"sub_down_{subject.id}", disabled=index == len(subjects) - 1):
                db.reorder_test_subjects(test.id, catalog.move_subject(subjects, index, index + 1))
                st.rerun()
        with st.expander(f"Edit {subject.subject_name}"):
            name = st.text_input("Subject name", value=subject.subject_name, key=f"sub_name_{subject.id}")
            count = st.number_input("Questions per test", min_value=1, value=subject.question_count, key=f"sub_count_{subject.id}")
            col1, col2 = st.columns(2)
            with col1:
                if st.button("Save", key=f"sub_save_{subject.id}"):
                    subject.subject_name, subject.question_count = catalog.validate_subject(
                        name, count, subjects, editing_id=subject.id
                    )
                    db.update_test_subject(subject)
                    st.rerun()
            with col2:
                if st.button("Delete", key=f"sub_del_{subject.id}"):
                    db.delete_test_subject(subject.id)
                    st.rerun()

    total = catalog.total_subject_questions(subjects)
    if subjects:
        st.write(f"Total from subjects: **{total}** (test says {test.total_questions})")
        if total != test.total_questions:
            st.warning("Subject totals differ from the test's question count; the subject totals are used.")

    with st.form(f"add_subject_{test.id}", clear_on_submit=True):
        col1, col2 = st.columns([3, 1])
        with col1:
            name = st.text_input("New subject")
        with col2:
            count = st.number_input("Questions", min_value=1, value=10)
        if st.form_submit_button("Add Subject"):
            name, count = catalog.validate_subject(name, count, subjects)
            db.create_test_subject(test.id, name, count, catalog.next_display_order(subjects))
            st.rerun()


def _render_question_list(db, test, subjects, questions):
    blank = Question(id="", test_id=test.id, question_text="", options=[""] * OPTIONS_PER_QUESTION, correct_answer=0)
    with st.expander("Add Question"):
        new_question = _question_fields(f"new_q_{test.id}", blank, subjects)
        if st.button("Add Question", key=f"add_q_{test.id}", type="primary"):
            db.create_question(catalog.validate_question(new_question))
            st.rerun()

    query = st.text_input("Search questions", key=f"q_search_{test.id}")
    filtered = [q for q in questions if query.lower() in q.question_text.lower()]
    for question in _pager(filtered, f"q_page_{test.id}"):
        with st.expander(f"[{question.subject} #{question.position}] {question.question_text[:90]}"):
            edited = _question_fields(f"q_{question.id}", question, subjects)
            col1, col2 = st.columns(2)
            with col1:
                if st.button("Save", key=f"q_save_{question.id}"):
                    db.update_question(catalog.validate_question(edited))
                    st.rerun()
            with col2:
                if st.button("Delete", key=f"q_del_{question.id}"):
                    db.delete_question(question.id)
                    st.rerun()


def _subject_choice(key: str, subjects):
    names = ["(none)"] + [s.subject_name for s in subjects]
    choice = st.selectbox("Add to subject", names, key=key)
    return None if choice == "(none)" else choice


def _render_bulk_upload(db, test, subjects, questions):
    st.markdown(
        "**CSV:** `question,option1,option2,option3,option4,correctAnswerIndex` (0-based; "
        "1-based when uploading into a subject)  \n"
        '**JSON:** `[{"questionText": "...", "options": ["A","B","C","D"], "correctAnswer": 0}]`'
    )
    subject = _subject_choice(f"upload_subject_{test.id}", subjects)
    uploaded = st.file_uploader("Upload a JSON or CSV file", type=["csv", "json"], key=f"upload_{test.id}")
    if uploaded is None:
        return
    start = catalog.next_position(questions, test.id, subject) if subject else 1
    parsed = parse_upload(uploaded.name, uploaded.getvalue(), test.id, subject=subject, start_position=start)
    if not parsed:
        st.warning("No valid questions found in the file.")
        return
    st.caption(f"{len(parsed)} questions ready. First: {parsed[0].question_text}")
    if st.button(f"Upload {len(parsed)} questions", key=f"do_upload_{test.id}", type="primary"):
        created = db.create_multiple_questions(parsed)
        st.success(f"Successfully uploaded {len(created)} questions!")


def _render_generator(db, test, subjects):
    preview_key = f"generated_{test.id}"
    with st.form(f"generate_{test.id}"):
        topic = st.text_input("Topic")
        count = st.number_input("Number of questions", min_value=1, max_value=MAX_QUESTIONS, value=5)
        subject = _subject_choice(f"gen_subject_{test.id}", subjects)
        if st.form_submit_button("Generate"):
            with st.spinner("Generating questions..."):
                st.session_state[preview_key] = generate_questions(topic, int(count), test.id, subject=subject)

    generated = st.session_state.get(preview_key) or []
    for number, question in enumerate(generated, start=1):
        st.write(f"**{number}. {question.question_text}**")
        for i, option in enumerate(question.options):
            st.write(f"{'✅' if i == question.correct_answer else '▫️'} {option}")
    if generated and st.button(f"Save {len(generated)} questions", key=f"save_generated_{test.id}", type="primary"):
        db.create_multiple_questions(generated)
        st.session_state.pop(preview_key)
        st.success("Generated questions saved.")


def render_questions():
    st.header("Questions")
    db = get_database()
    tests = db.fetch_tests()
    if not tests:
        st.caption("Create a test first.")
        return
    by_id = {t.id: t for t in tests}
    test_id = st.selectbox("Test", list(by_id), format_func=lambda i: by_id[i].title, key="question_test")
    test = by_id[test_id]
    subjects = db.fetch_test_subjects(test.id)
    questions = db.fetch_questions_by_test_id(test.id)
    st.caption(f"{len(questions)} questions in the bank for this test")

    subjects_tab, questions_tab, upload_tab, ai_tab = st.tabs(["Subjects", "Questions", "Bulk upload", "Generate with AI"])
    with subjects_tab:
        _render_subjects(db, test, subjects)
    with questions_tab:
        _render_question_list(db, test, subjects, questions)
    with upload_tab:
        _render_bulk_upload(db, test, subjects, questions)
    with ai_tab:
        _render_generator(db, test, subjects)


# ----- Users & access -----

def _access_buttons(key: str, status: str):
    """Approve/Lock buttons; returns the chosen status or None."""
    col1, col2 = st.columns(2)
    with col1:
        if st.button("Approve", key=f"{key}_approve", disabled=status == ACCESS_APPROVED):
            return ACCESS_APPROVED
    with col2:
        if st.button("Lock", key=f"{key}_lock", disabled=status == ACCESS_LOCKED):
            return ACCESS_LOCKED
    return None


def _render_user_access(db, user: User, categories, tests, category_access, test_access):
    pending = access.pending_requests(category_access, test_access, user.id)
    if pending:
        st.info(f"{pending} pending request{'s' if pending != 1 else ''}")
        if st.button("Approve all pending categories", key=f"approve_all_{user.id}"):
            access.approve_all_pending(db, user, category_access, categories)
            st.rerun()
    for category in categories:
        status = access.category_status(category_access, user.id, category.id)
        col1, col2 = st.columns([3, 2])
        with col1:
            st.write(f"{STATUS_ICONS[status]} **{category.name}**")
        with col2:
            decision = _access_buttons(f"ca_{user.id}_{category.id}", status)
        if decision:
            access.set_category_access(db, user, category, decision)
            st.rerun()
        for test in (t for t in tests if t.category_id == category.id):
            t_status = access.test_status(test_access, user.id, test.id)
            col1, col2 = st.columns([3, 2])
            with col1:
                st.write(f"  {STATUS_ICONS[t_status]} {test.title}")
            with col2:
                decision = _access_buttons(f"ta_{user.id}_{test.id}", t_status)
            if decision:
                access.set_test_access(db, user, test, decision)
                st.rerun()


def _render_user_history(db, user: User, tests):
    titles = {t.id: t.title for t in tests}
    results = db.fetch_results_by_user_id(user.id)
    if not results:
        st.caption("No tests taken.")
    for result in results:
        col1, col2, col3 = st.columns([3, 2, 1])
        with col1:
            st.write(titles.get(result.test_id, "Deleted test"))
        with col2:
            mark = "✅" if result.percentage >= PASS_PERCENTAGE else "❌"
            st.write(f"{mark} {result.score}/{result.total_questions} ({result.percentage}%)")
        with col3:
            if st.button("View", key=f"admin_result_{result.id}"):
                _show_result(result.id)


def render_users(admin: User):
    st.header("Users")
    db = get_database()
    users = db.fetch_users()
    categories = db.fetch_categories()
    tests = db.fetch_tests()
    category_access = db.fetch_category_access()
    test_access = db.fetch_test_access()

    with st.expander("Add User"):
        with st.form("add_user", clear_on_submit=True):
            name = st.text_input("Name")
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            is_admin = st.checkbox("Administrator")
            if st.form_submit_button("Add User", type="primary"):
                if not name.strip() or not email.strip() or not password:
                    raise PrepProError("Name, email and password are required.")
                db.create_user(User(id="", name=name.strip(), email=email.strip(), password=password, is_admin=is_admin))
                st.rerun()

    query = st.text_input("Search users", key="user_search")
    for user in _pager(catalog.search_users(users, query), "user_page"):
        pending = access.pending_requests(category_access, test_access, user.id)
        badge = f" · {pending} pending" if pending else ""
        with st.expander(f"{user.name} <{user.email}>{' · Admin' if user.is_admin else ''}{badge}"):
            details_tab, access_tab, history_tab = st.tabs(["Details", "Access", "History"])
            with details_tab:
                name = st.text_input("Name", value=user.name, key=f"user_name_{user.id}")
                email = st.text_input("Email", value=user.email, key=f"user_email_{user.id}")
                is_admin = st.checkbox("Administrator", value=user.is_admin, key=f"user_admin_{user.id}")
                col1, col2 = st.columns(2)
                with col1:
                    if st.button("Save", key=f"user_save_{user.id}"):
                        user.name, user.email, user.is_admin = name.strip(), email.strip(), is_admin
                        db.update_user(user)
                        st.rerun()
                with col2:
                    if st.button("Delete", key=f"user_del_{user.id}", disabled=user.id == admin.id):
                        db.delete_user(user.id)
                        st.rerun()
            with access_tab:
                if user.is_admin:
                    st.caption("Admins can open every category and test.")
                else:
                    _render_user_access(db, user, categories, tests, category_access, test_access)
            with history_tab:
                _render_user_history(db, user, tests)


def render(page: str, user: User):
    if not user.is_admin:
        st.error("Admins only.")
        return
    if page == "Categories":
        render_categories()
    elif page == "Tests":
        render_tests()
    elif page == "Questions":
        render_questions()
    elif page == "Users":
        render_users(user)
