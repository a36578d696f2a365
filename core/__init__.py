"""
core — shared data shapes for the job-search assistant.

    from core.models import SearchRequest, ScrapedJobRecord, JobSource
"""
