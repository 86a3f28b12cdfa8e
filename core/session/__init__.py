"""
CRISTAL Core Session
======================
AppSession: the per-user container exposed to the UI.
"""

from core.session.context import AppSession

__all__ = ["AppSession"]
