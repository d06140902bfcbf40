"""
Utility functions and helpers.

Modules:
- files: File reading and writing helpers
- retry: Retry with exponential backoff for record-store writes
"""
