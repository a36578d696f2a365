"""HTTP boundary for the job-search assistant."""
