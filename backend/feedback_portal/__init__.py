"""Feedback portal reports backend."""
