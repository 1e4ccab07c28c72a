"""Candidate matching and streaming ATS scoring pipeline."""

__version__ = "0.1.0"
