"""blockerwatch -- Detects when a developer is blocked.

This package observes the screen and the foreground application and
infers, with a numeric confidence, whether the developer is stuck on
an error, a hang, or a permission failure. Deterministic signature
rules, an optional vision classifier, and a local language model are
folded into a single consensus score that decides whether a blocker
record is raised.
"""

__version__ = "0.1.0"
