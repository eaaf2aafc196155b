"""
Spec-Kit Integration
====================

Parses GitHub spec-kit feature specifications (``.specify/`` projects) into
the canonical specification model.
"""

from .parser import SpecKitParser

__all__ = ["SpecKitParser"]
