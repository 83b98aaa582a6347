"""Event type constants for Splice."""

# Job lifecycle events
JOB_CREATED = "job_created"
JOB_PARTIAL_OUTPUT = "job_partial_output"
JOB_SUCCEEDED = "job_succeeded"
JOB_FAILED = "job_failed"
JOB_TIMED_OUT = "job_timed_out"
JOB_SUPERSEDED = "job_superseded"

# Buffer events
MERGE_APPLIED = "merge_applied"

# Configuration events
SETTINGS_CHANGED = "settings_changed"
