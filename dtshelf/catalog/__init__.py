"""
Catalog package for the bookshelf API.

Holds the book schema, the sheet loader, the search functions (remote
AI ranking with a local keyword fallback) and the REST routes that
expose them. The router is imported from ``dtshelf.catalog.router``.
"""
