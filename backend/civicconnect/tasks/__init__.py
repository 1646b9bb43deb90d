"""Scheduled and operational tasks."""
