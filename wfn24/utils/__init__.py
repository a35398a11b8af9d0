"""Utility helpers."""
from wfn24.utils.helpers import parse_datetime, safe_int, slugify, utcnow

__all__ = ["safe_int", "slugify", "utcnow", "parse_datetime"]
