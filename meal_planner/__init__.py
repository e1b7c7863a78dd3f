"""
Weekly meal planner: meal slot editing, plan generation and grocery lists.
"""

__version__ = "0.1.0"
