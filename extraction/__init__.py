"""Extraction module for turning user messages into context patches."""

from .extractor import FieldExtractor, extract_fields

__all__ = ["FieldExtractor", "extract_fields"]
