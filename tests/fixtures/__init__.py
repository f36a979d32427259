"""Test doubles and sample payloads for the migration pipeline tests.

Provides:
- sample legacy sources (PHP, Python 2)
- a scripted model client and a recording sleep
- AI-shaped audit, blueprint and code bundle payloads
"""

from __future__ import annotations
