"""Run, jibe and session analysis."""

from .session_analyzer import SessionAnalyzer

__all__ = ['SessionAnalyzer']
