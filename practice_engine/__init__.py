"""
ninja practice engine.

Adaptive daily practice scheduling and content hydration: picks which
curriculum atoms a learner practises each day, matches them to authored
questions, and tracks mastery, streaks and badges.
"""

__version__ = "1.0.0"
