"""Parsers for session recordings."""

from .file_parser import FileParser

__all__ = ['FileParser']
