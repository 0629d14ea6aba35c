"""
FinAI - Source Package

A conversational personal-finance assistant: the user says what they
spent or earned, the assistant records it, checks the budget and replies.

DESIGN PRINCIPLES:
1. AI extracts → Validation gates → System records
2. Fail softly at the turn boundary, never silently in between
3. No silent corrections
4. Every step must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "FinAI Team"
