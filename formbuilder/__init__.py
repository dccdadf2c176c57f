"""
Form builder backend: categorize, cloze and comprehension forms with graded responses
"""

__version__ = "1.0.0"
