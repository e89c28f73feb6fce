"""
Library data layer.

This package contains:
- Author and Book entities
- MongoDB connection management and demo seed data
- Resource query parameters for author listings
- Paged results over count-then-slice query sources
- Property mapping used to translate sort clauses
- The library repository
"""

__version__ = "1.0.0"
