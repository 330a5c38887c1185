"""Batch grading of student submissions with generative models."""

__version__ = "0.1.0"
