"""
Data Models
===========

Pydantic models for jobs, crop geometry, render results and API payloads.
"""
