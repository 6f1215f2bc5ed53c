"""
Probate Engine — lifecycle and lead-time compliance rules for probate records.

Architecture: Validator → Calculator → Store, plus a bulk "forward to GP" processor.
Philosophy:  One place derives lead times. Every screen reads what it computes.
"""

__version__ = "1.0.0"
