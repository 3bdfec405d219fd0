"""Caseflow command line interface."""

from caseflow.cli.main import cli

__all__ = ["cli"]
