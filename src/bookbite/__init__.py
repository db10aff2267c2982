"""bookbite -- client communication layer for the BookBite content API.

This package talks to the BookBite server on behalf of an application: it
sends typed requests with retry and error classification, keeps a
file-backed cache of books, summaries and curated lists, streams chat
replies over server-sent events, and combines these per entity behind
repository interfaces.

Typical use::

    from bookbite.container import Container

    async with Container() as services:
        book = await services.books.fetch_book("42")

Modules:
    container: Startup wiring of every collaborator.
    models: Pydantic models shared across the entire package.
    config: XDG-aware configuration loading and precedence resolution.
    exceptions: Closed error taxonomy.
    output: Rich-backed diagnostics on stderr.
    hooks: Request, response, error and cache-write observers.
"""

__version__ = "0.1.0"
