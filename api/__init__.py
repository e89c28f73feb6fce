"""
FastAPI RESTful API for the Library.

This module provides a REST API for:
- Authors with paging, filtering, searching, sorting and data shaping
- Books of an author, including PUT and JSON Patch upserts
- Content negotiation and hypermedia links
- HTTP cache headers and IP rate limiting
"""
