"""
Test session engine: question selection per subject quota, the timed
session state machine, and scoring. No UI.
"""
import logging
import math
import random
import time
from typing import Callable, Dict, Iterable, List, Optional

from engine import PASS_PERCENTAGE, QUESTIONS_PER_PAGE, SESSION_AUTOSAVE_SECONDS
from src.errors import SessionStateError
from src.models import Question, Test, TestResult, TestSubject, UserAnswer

logger = logging.getLogger(__name__)

IN_PROGRESS = "in_progress"
PAUSED = "paused"
SUBMITTED = "submitted"
ENDED_FOR_CHEATING = "ended_for_cheating"


def select_questions(
    test: Test,
    questions: Iterable[Question],
    subjects: Iterable[TestSubject] = (),
    used_ids: Iterable[str] = (),
    seed=None,
) -> List[Question]:
    """
    Pick and order the questions for one sitting of a test.

    With subjects configured, each subject contributes up to its question_count,
    in display_order, as one contiguous block. Questions the user has not seen
    before are taken first. Without subjects, total_questions are drawn from the
    whole test.

    Args:
        test: The test being taken
        questions: Candidate questions (filtered to the test here)
        subjects: Subject quotas for the test
        used_ids: Question ids the user already saw in this test
        seed: Optional seed for a reproducible draw

    Returns:
        Ordered list of selected questions
    """
    rng = random.Random(seed)
    pool = [q for q in questions if q.test_id == test.id]
    used = set(used_ids)
    ordered_subjects = sorted((s for s in subjects if s.test_id == test.id), key=lambda s: s.display_order)

    if not ordered_subjects:
        shuffled = list(pool)
        rng.shuffle(shuffled)
        return shuffled[: max(test.total_questions, 0)]

    selected: List[Question] = []
    for subject in ordered_subjects:
        subject_questions = [q for q in pool if q.subject == subject.subject_name]
        fresh = [q for q in subject_questions if q.id not in used]
        seen = [q for q in subject_questions if q.id in used]
        rng.shuffle(fresh)
        rng.shuffle(seen)
        take = min(subject.question_count, len(subject_questions))
        selected.extend((fresh + seen)[:take])
        logger.debug(
            "Subject %r: found %d (%d unused), taking %d",
            subject.subject_name, len(subject_questions), len(fresh), take,
        )

    logger.info("Selected %d questions for test %s", len(selected), test.id)
    return selected


def score_answers(questions: List[Question], answers: List[UserAnswer]) -> int:
    """One point per answer matching the question's correct option."""
    by_id: Dict[str, Question] = {q.id: q for q in questions}
    score = 0
    for answer in answers:
        question = by_id.get(answer.question_id)
        if question is not None and answer.selected_answer is not None and answer.selected_answer == question.correct_answer:
            score += 1
    return score


def page_count(n_items: int, per_page: int = QUESTIONS_PER_PAGE) -> int:
    return max(1, math.ceil(n_items / per_page))


def page_slice(items: List, page: int, per_page: int = QUESTIONS_PER_PAGE) -> List:
    start = page * per_page
    return items[start : start + per_page]


class TestSession:
    """One user's timed attempt at a test, from start to submit or termination."""

    def __init__(
        self,
        user_id: str,
        test: Test,
        questions: List[Question],
        answers: Optional[List[UserAnswer]] = None,
        time_left: Optional[float] = None,
        status: str = IN_PROGRESS,
        store=None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.user_id = user_id
        self.test = test
        self.questions = questions
        self.answers = answers if answers is not None else [UserAnswer(q.id) for q in questions]
        self.status = status
        self.timed_out = False
        self.store = store

        self._clock = clock
        self._time_left = float(test.duration * 60 if time_left is None else time_left)
        self._last_tick = clock()
        self._last_save = self._last_tick

    @classmethod
    def start(
        cls,
        user_id: str,
        test: Test,
        question_pool: Iterable[Question],
        subjects: Iterable[TestSubject] = (),
        used_ids: Iterable[str] = (),
        seed=None,
        store=None,
        clock: Callable[[], float] = time.monotonic,
    ) -> "TestSession":
        questions = select_questions(test, question_pool, subjects, used_ids, seed)
        session = cls(user_id, test, questions, store=store, clock=clock)
        session._persist()
        logger.info("User %s started test %s with %d questions", user_id, test.id, len(questions))
        return session

    @classmethod
    def restore(cls, user_id: str, test: Test, saved: Dict, store=None, clock: Callable[[], float] = time.monotonic) -> "TestSession":
        """Rebuild a session from its saved document. The question order is kept as saved."""
        questions = [Question.from_snapshot(q) for q in saved.get("stable_questions") or []]
        answers = [UserAnswer.from_dict(a) for a in saved.get("user_answers") or []]
        status = PAUSED if saved.get("is_paused") else IN_PROGRESS
        session = cls(user_id, test, questions, answers, saved.get("time_left"), status, store, clock)
        logger.info("User %s resumed test %s (%ds left)", user_id, test.id, session.seconds_left)
        return session

    def to_saved(self) -> Dict:
        return {
            "user_answers": [a.to_dict() for a in self.answers],
            "time_left": self.seconds_left,
            "stable_questions": [q.to_snapshot() for q in self.questions],
            "ended_for_cheating": self.status == ENDED_FOR_CHEATING,
            "is_paused": self.status == PAUSED,
        }

    # ----- state -----

    @property
    def seconds_left(self) -> int:
        return max(0, math.ceil(self._time_left))

    @property
    def is_finished(self) -> bool:
        return self.status in (SUBMITTED, ENDED_FOR_CHEATING)

    @property
    def answered_count(self) -> int:
        return sum(1 for a in self.answers if a.selected_answer is not None)

    def selected_for(self, question_id: str) -> Optional[int]:
        for answer in self.answers:
            if answer.question_id == question_id:
                return answer.selected_answer
        return None

    def _require(self, *states: str) -> None:
        if self.status not in states:
            raise SessionStateError(f"Cannot do that while the test is {self.status.replace('_', ' ')}")

    def _persist(self) -> None:
        if self.store is not None and not self.is_finished:
            self.store.save(self.user_id, self.test.id, self.to_saved())
            self._last_save = self._clock()

    def discard(self) -> None:
        """Drop the saved copy once the attempt is recorded or void."""
        if self.store is not None:
            self.store.clear(self.user_id, self.test.id)

    # ----- transitions -----

    def select_answer(self, question_id: str, option_index: int) -> None:
        self._require(IN_PROGRESS)
        question = next((q for q in self.questions if q.id == question_id), None)
        if question is None:
            raise SessionStateError(f"Question {question_id} is not part of this test")
        if not 0 <= option_index < len(question.options):
            raise SessionStateError(f"Option {option_index} does not exist for question {question_id}")
        for answer in self.answers:
            if answer.question_id == question_id:
                answer.selected_answer = option_index
                break
        else:
            self.answers.append(UserAnswer(question_id, option_index))
        self._persist()

    def tick(self, now: Optional[float] = None) -> Optional[TestResult]:
        """
        Advance the countdown to `now`.

        Returns the result when the clock ran out and the test auto-submitted,
        otherwise None.
        """
        now = self._clock() if now is None else now
        if self.status != IN_PROGRESS:
            self._last_tick = now
            return None
        self._advance(now)
        if self._time_left <= 0:
            logger.info("Time is up for user %s on test %s", self.user_id, self.test.id)
            self.timed_out = True
            return self.submit()
        if now - self._last_save >= SESSION_AUTOSAVE_SECONDS:
            self._persist()
        return None

    def _advance(self, now: float) -> None:
        self._time_left = max(0.0, self._time_left - max(0.0, now - self._last_tick))
        self._last_tick = now

    def pause(self) -> None:
        self._require(IN_PROGRESS)
        self._advance(self._clock())
        self.status = PAUSED
        self._persist()
        logger.info("User %s paused test %s with %ds left", self.user_id, self.test.id, self.seconds_left)

    def resume(self) -> None:
        self._require(PAUSED)
        self.status = IN_PROGRESS
        self._last_tick = self._clock()
        self._persist()

    def report_focus_lost(self) -> bool:
        """
        The page was hidden or the window lost focus.

        Ends an in-progress test for cheating and returns True. Paused or
        finished sessions are left alone.
        """
        if self.status != IN_PROGRESS:
            return False
        self.status = ENDED_FOR_CHEATING
        self.discard()
        logger.warning("Test %s ended for user %s: page lost focus", self.test.id, self.user_id)
        return True

    def submit(self) -> TestResult:
        """
        Score the attempt and hand back a result ready to be saved.

        The saved copy is kept until the caller has stored the result and
        calls discard(), so a failed save can still be resumed.
        """
        self._require(IN_PROGRESS)
        self.status = SUBMITTED
        result = TestResult(
            id=None,
            user_id=self.user_id,
            test_id=self.test.id,
            score=score_answers(self.questions, self.answers),
            total_questions=len(self.questions),
            answers=[UserAnswer(a.question_id, a.selected_answer) for a in self.answers],
            questions=list(self.questions),
        )
        logger.info(
            "User %s submitted test %s: %d/%d", self.user_id, self.test.id, result.score, result.total_questions
        )
        return result


def subject_breakdown(result: TestResult) -> Dict[str, Dict[str, int]]:
    """Correct/total per subject for a finished result."""
    stats: Dict[str, Dict[str, int]] = {}
    for question in result.questions:
        entry = stats.setdefault(question.subject, {"total": 0, "correct": 0})
        entry["total"] += 1
        if result.selected_for(question.id) == question.correct_answer:
            entry["correct"] += 1
    return stats


def summarize_results(results: List[TestResult]) -> Dict:
    """
    Performance cards for the user dashboard.

    Returns:
        {total_attempts, average_score, pass_rate, best_score, passed} with
        percentages rounded to whole numbers
    """
    total = len(results)
    if not total:
        return {"total_attempts": 0, "average_score": 0, "pass_rate": 0, "best_score": 0, "passed": 0}
    percentages = [r.score / r.total_questions * 100 if r.total_questions else 0 for r in results]
    passed = sum(1 for p in percentages if p >= PASS_PERCENTAGE)
    return {
        "total_attempts": total,
        "average_score": round(sum(percentages) / total),
        "pass_rate": round(passed / total * 100),
        "best_score": max(round(p) for p in percentages),
        "passed": passed,
    }
