"""
Interactive index authoring.
"""

from .session import InteractiveSession, SessionState, parse_field_spec, parse_ttl, run_session

__all__ = ["InteractiveSession", "SessionState", "parse_field_spec", "parse_ttl", "run_session"]
