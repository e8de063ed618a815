"""Unit tests for the taskflow client engine."""
