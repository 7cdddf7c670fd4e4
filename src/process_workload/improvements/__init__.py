"""Improvement candidates, matching against steps, and what-if simulation."""
