"""
TechDeck Academy - AI tutoring pipeline.

LLM interaction and memory subsystem: prompt composition, resilient
invocation, response parsing and the teacher's notes memory document.
"""

__version__ = "1.0.0"
