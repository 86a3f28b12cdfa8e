"""
CRISTAL AI Module — Advisory Only
===================================
Intelligence advisors read an explicit snapshot and only propose
alerts. The scanner is the single writer, through the mutation
pipeline.
"""

from ai.scanner import IntelligenceScanner, default_advisors

__all__ = [
    "IntelligenceScanner",
    "default_advisors",
]
