"""Parsers module for the docmapper pipeline.

This module contains the schema-driven parser that turns raw model
completions into property mappings.
"""

from .result_parser import ParseResult, ResultParser, calculate_overall_confidence, coerce_confidence

__all__ = ["ParseResult", "ResultParser", "calculate_overall_confidence", "coerce_confidence"]
