"""
Service layer - per-user planner sessions.
"""
