"""Pydantic schemas shared across search, permits, repositories and CRM sync."""
