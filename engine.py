"""Exam constants shared by the UI and the session engine. No UI."""
# Scoring: one point per correct answer, unanswered and wrong score 0
# Pass mark is a percentage of total questions

PASS_PERCENTAGE = 70
QUESTIONS_PER_PAGE = 25
ADMIN_PAGE_SIZE = 25
OPTIONS_PER_QUESTION = 4
DEFAULT_SUBJECT = "General"
DEFAULT_DIFFICULTY = "Medium"
DIFFICULTIES = ("Easy", "Medium", "Hard")
LOW_TIME_SECONDS = 60
SESSION_AUTOSAVE_SECONDS = 5
NOTIFICATION_POLL_SECONDS = 3
