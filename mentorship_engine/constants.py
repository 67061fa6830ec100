# mentorship_engine/constants.py
class ErrorMessages:
    MENTOR_NOT_FOUND = "Mentor not found"
    REQUEST_NOT_FOUND = "Mentorship request not found"
    SESSION_NOT_FOUND = "Session not found"
    MENTOR_NOT_MATCHED = "Mentor not in matched list"
    CAPACITY_EXCEEDED = "Mentor has reached maximum capacity"
    INVALID_STATUS = "Invalid status transition"
    CANNOT_CANCEL = "Request cannot be cancelled in current status"
    NO_SELECTED_MENTOR = "Please select a mentor first"
    ALREADY_SELECTED = "A mentor has already been selected for this request"
    SESSION_CLOSED = "Session is no longer open"
    EMBEDDING_FAILED = "Failed to generate embedding"

class BusinessRules:
    MAX_TOPIC_LENGTH = 200
    MAX_DESCRIPTION_LENGTH = 1000
    MAX_NOTES_LENGTH = 2000
    MAX_COMMENT_LENGTH = 1000
    MAX_CANCEL_REASON_LENGTH = 500
    MIN_SESSION_MINUTES = 15
    MAX_SESSION_MINUTES = 240
    DEFAULT_SESSION_MINUTES = 60
    MIN_RATING = 1
    MAX_RATING = 5
    DEFAULT_MAX_MENTEES = 5
    MIN_MAX_MENTEES = 1
    MAX_MAX_MENTEES = 20
    MAX_STORED_MATCHES = 10
    SUMMARY_TOP_MATCHES = 3

DOMAINS = [
    "FinTech",
    "HealthTech",
    "EdTech",
    "E-commerce",
    "SaaS",
    "AI/ML",
    "IoT",
    "CleanTech",
    "AgriTech",
    "Other",
]

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
