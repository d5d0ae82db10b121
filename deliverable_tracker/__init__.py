"""
Deliverable Tracker - Deliverable variation lifecycle and progress validation.
"""
__version__ = "1.0.0"
