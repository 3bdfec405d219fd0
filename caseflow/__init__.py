"""Caseflow - guided conversation workflow engine"""

__version__ = "0.1.0"
