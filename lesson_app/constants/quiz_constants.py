"""Quiz-related constants shared across the session core and the server."""

BATCH_SIZE: int = 50
MIN_SUBMISSION_ANSWERS: int = 50
PROGRESS_KEY_NAMESPACE: str = "nst_mcq_progress"
TICK_INTERVAL_SECONDS: float = 1.0
