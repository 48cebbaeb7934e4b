"""
Finance Pro - Source Package

A chat-first personal finance assistant. Users describe income and
expenses in plain language (typed or spoken) and a hosted Gemini model
turns each message into a structured transaction record.

DESIGN PRINCIPLES:
1. The model proposes, the parser verifies, the store records
2. Malformed model output never reaches storage
3. Users only ever see prose, never stack traces
4. Every branch of the pipeline is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Pro Team"
