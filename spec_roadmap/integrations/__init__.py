"""
Specification format integrations: spec-kit feature folders and BMAD
planning documents. Both produce the same ParsedSpec model.
"""

from .bmad import BMADParser
from .speckit import SpecKitParser

__all__ = ["BMADParser", "SpecKitParser"]
