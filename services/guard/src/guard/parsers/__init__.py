"""Parsers package."""

from .exit_list_parser import ExitListParser

__all__ = ["ExitListParser"]
