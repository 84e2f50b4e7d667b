"""
Review workflow: authenticated add and delete against the catalog.
"""

from typing import Optional

import structlog

from .catalog import CatalogStore
from .errors import NotFound, ValidationFailure
from .models import Identity

logger = structlog.get_logger(__name__)


class ReviewWorkflow:
    """
    Applies review changes on behalf of a verified Identity.

    The acting username always comes from the Identity, so one user cannot
    write or delete another user's review.
    """

    def __init__(self, catalog: CatalogStore):
        self.catalog = catalog

    def add_review(self, identity: Identity, book_id: str, text: Optional[str]) -> None:
        """
        Add or replace the caller's review of a book.

        Args:
            identity: Verified identity of the caller
            book_id: Catalog key
            text: Review text, stored exactly as given

        Raises:
            ValidationFailure: If text is missing or empty
            NotFound: If the book does not exist
        """
        if not text:
            raise ValidationFailure("Review text is required")

        if not self.catalog.upsert_review(book_id, identity.username, text):
            raise NotFound("Book not found")

        logger.info("Review saved", book_id=book_id, username=identity.username)

    def delete_review(self, identity: Identity, book_id: str) -> None:
        """
        Remove the caller's review of a book.

        Raises:
            NotFound: If the book does not exist or the caller has no review on it
        """
        if not self.catalog.delete_review(book_id, identity.username):
            raise NotFound("Book not found or you have not reviewed this book")

        logger.info("Review deleted", book_id=book_id, username=identity.username)
