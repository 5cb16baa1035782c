"""Integration tests for the verifier engine.

These run whole agent lifecycles against real hook processes.

Test Organization:
- test_end_to_end_scenario.py: SessionStart, tool hooks, Stop, metrics and transcripts together
"""
