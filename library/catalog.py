"""
Fixed in-memory book catalog and its per-user review maps.
"""

import threading
from typing import Dict, Iterable, List, Optional

import structlog

from .models import Book

logger = structlog.get_logger(__name__)


DEFAULT_BOOKS = [
    {"id": "1", "author": "Chinua Achebe", "title": "Things Fall Apart"},
    {"id": "2", "author": "Hans Christian Andersen", "title": "Fairy tales"},
    {"id": "3", "author": "Dante Alighieri", "title": "The Divine Comedy"},
    {"id": "4", "author": "Unknown", "title": "The Epic Of Gilgamesh"},
    {"id": "5", "author": "Unknown", "title": "The Book Of Job"},
    {"id": "6", "author": "Unknown", "title": "One Thousand and One Nights"},
    {"id": "7", "author": "Unknown", "title": "Njál's Saga"},
    {"id": "8", "author": "Jane Austen", "title": "Pride and Prejudice"},
    {"id": "9", "author": "Honoré de Balzac", "title": "Le Père Goriot"},
    {"id": "10", "author": "Samuel Beckett", "title": "Molloy, Malone Dies, The Unnamable, the trilogy"},
]


class CatalogStore:
    """
    Book catalog seeded once at construction.

    Books are never added or removed afterwards; only their review maps
    change. Reads return copies so callers cannot bypass the lock.
    """

    def __init__(self, books: Optional[Iterable[Dict]] = None):
        """
        Initialize the catalog.

        Args:
            books: Seed records with id, title and author (defaults to DEFAULT_BOOKS)
        """
        self._lock = threading.Lock()
        self._books: Dict[str, Book] = {}

        for record in (DEFAULT_BOOKS if books is None else books):
            book = Book(**record)
            if book.id in self._books:
                raise ValueError(f"Duplicate book id in catalog seed: {book.id}")
            self._books[book.id] = book

        logger.info("Catalog initialized", books=len(self._books))

    def list_all(self) -> List[Book]:
        """Every book in insertion order."""
        with self._lock:
            return [book.model_copy(deep=True) for book in self._books.values()]

    def get_by_id(self, book_id: str) -> Optional[Book]:
        """Book with this id, or None."""
        with self._lock:
            book = self._books.get(book_id)
            return book.model_copy(deep=True) if book else None

    def get_by_author(self, author: str) -> List[Book]:
        """Books whose author matches exactly (case-sensitive)."""
        with self._lock:
            return [
                book.model_copy(deep=True)
                for book in self._books.values()
                if book.author == author
            ]

    def get_by_title(self, title: str) -> List[Book]:
        """Books whose title equals ``title`` ignoring case. No partial matches."""
        wanted = title.casefold()
        with self._lock:
            return [
                book.model_copy(deep=True)
                for book in self._books.values()
                if book.title.casefold() == wanted
            ]

    def get_reviews(self, book_id: str) -> Optional[Dict[str, str]]:
        """
        Reviews for a book.

        Returns:
            Copy of the review map (possibly empty), or None if the book is absent
        """
        with self._lock:
            book = self._books.get(book_id)
            if book is None:
                return None
            return dict(book.reviews)

    def upsert_review(self, book_id: str, username: str, text: str) -> bool:
        """
        Insert or overwrite ``username``'s review of a book.

        Returns:
            False if the book is absent, True otherwise
        """
        with self._lock:
            book = self._books.get(book_id)
            if book is None:
                return False
            book.reviews[username] = text
        return True

    def delete_review(self, book_id: str, username: str) -> bool:
        """
        Remove ``username``'s review of a book.

        Returns:
            False if the book is absent or has no review by ``username``
        """
        with self._lock:
            book = self._books.get(book_id)
            if book is None or username not in book.reviews:
                return False
            del book.reviews[username]
        return True

    def count(self) -> int:
        """Number of books in the catalog."""
        return len(self._books)
