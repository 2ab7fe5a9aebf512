"""Local HTTP endpoint for blockerwatch.

Serves the blocker query/command surface to dashboards and automation
running on the same machine.
"""
