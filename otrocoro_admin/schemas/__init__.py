"""Pydantic schemas for the admin API and stored documents."""
