"""Pydantic schemas for API payloads and storage records."""
