"""
Self-service organizations engine.

Organizations, memberships, teams and invitations scoped under a platform
app and environment.
"""

__version__ = "1.0.0"
