"""newsgrab: batch article scraper that saves readable page text to disk."""

__version__ = "0.1.0"
