"""
TaskFlow work-status lifecycle engine.

Moves projects, phases and tasks through
pending → onGoing → delayed/completed → cancelled.
"""

__version__ = "0.1.0"
