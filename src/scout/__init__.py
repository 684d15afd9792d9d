"""
Thesis Scout.

Discovers and scores early-stage companies that match a natural-language
investment thesis.
"""

__version__ = "0.1.0"
