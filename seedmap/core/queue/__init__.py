"""
Queue Module
===========

Job admission and generation orchestration.

Components:
- job_tracker: In-memory job records and the concurrency ceiling
- orchestrator: Submission, async render tasks and completion handling
"""
