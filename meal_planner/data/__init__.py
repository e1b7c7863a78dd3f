"""
Data layer - domain models, sqlite storage and async repository.
"""
