"""
Source structural extraction for Python and JavaScript/TypeScript files.
"""

from .extractor import ExtractionResult, SourceExtractor, detect_language, extract_source
from .file_search import FileSearcher, is_test_file
from .stubs import classify_script_body, is_placeholder_text

__all__ = [
    "ExtractionResult",
    "FileSearcher",
    "SourceExtractor",
    "classify_script_body",
    "detect_language",
    "extract_source",
    "is_placeholder_text",
    "is_test_file",
]
