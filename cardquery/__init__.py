"""
Card Query backend.

Streams LLM-assisted credit card recommendations over Server-Sent Events.
"""

__version__ = "0.1.0"
