"""
LinkedIn Job Pipeline

Discovers LinkedIn job postings, extracts them with a real browser session
and stores them through a backend API, coordinated by a Redis work queue.
"""

__version__ = "1.0.0"
