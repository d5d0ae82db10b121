"""
API Layer - REST endpoints for the Deliverable Tracker.
"""
