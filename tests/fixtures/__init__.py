"""Test fixtures for mailhub.

This package provides reusable test fixtures:
- accounts: factories for account and email payloads and records
- backend: an in-process fake of the mail-management REST API
"""
