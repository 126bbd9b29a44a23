"""
Feedback Engine: batch and multi-turn dialog feedback collection.
"""

__version__ = "0.1.0"
