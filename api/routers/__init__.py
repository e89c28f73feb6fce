"""
API routers, mounted by the application under the API prefix.
"""

from api.routers import author_collections, authors, books, root

routers = [
    root.router,
    authors.router,
    books.router,
    author_collections.router,
]
