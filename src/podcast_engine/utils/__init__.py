"""Utility modules."""

from podcast_engine.utils.async_utils import run_async, with_timeout
from podcast_engine.utils.json_extract import extract_fields, parse_json_response

__all__ = ["extract_fields", "parse_json_response", "run_async", "with_timeout"]
