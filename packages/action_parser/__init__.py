"""Action text grammar and parser."""

from .parser import ParseResult, get_summary, normalize_box, parse_action_text

__all__ = ["ParseResult", "get_summary", "normalize_box", "parse_action_text"]
