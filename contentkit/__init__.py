"""Content management building blocks on SQLite: articles, pages, menus and media."""

__version__ = "1.0.0"