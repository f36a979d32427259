"""Legacy migration pipeline orchestrator.

Runs the Analyze, Design and Build stages over a project record, with
fixed-delay retries on transient provider errors, deterministic simulated
fallbacks, and a bounded self-healing build loop.
"""
