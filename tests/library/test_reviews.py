"""
Unit tests for the review workflow.
"""

from datetime import datetime, timedelta

import pytest

from library.errors import NotFound, ValidationFailure
from library.models import Identity


def identity_for(username):
    return Identity(username=username, expires_at=datetime.utcnow() + timedelta(hours=1))


class TestReviewWorkflow:
    """Test cases for ReviewWorkflow."""

    def test_add_review(self, review_workflow, catalog_store):
        """Test that a review is stored under the caller's username."""
        review_workflow.add_review(identity_for("alice"), "1", "x")
        assert catalog_store.get_reviews("1") == {"alice": "x"}

    def test_add_review_overwrites(self, review_workflow, catalog_store):
        """Test that adding again replaces the previous text."""
        alice = identity_for("alice")
        review_workflow.add_review(alice, "1", "x")
        review_workflow.add_review(alice, "1", "y")

        assert catalog_store.get_reviews("1") == {"alice": "y"}

    def test_text_stored_unmodified(self, review_workflow, catalog_store):
        """Test that review text is not trimmed or escaped."""
        text = "  <b>bold</b> & spaced  "
        review_workflow.add_review(identity_for("alice"), "1", text)

        assert catalog_store.get_reviews("1")["alice"] == text

    @pytest.mark.parametrize("text", ["", None])
    def test_empty_text_rejected(self, review_workflow, catalog_store, text):
        """Test that missing text is a validation failure and stores nothing."""
        with pytest.raises(ValidationFailure):
            review_workflow.add_review(identity_for("alice"), "1", text)

        assert catalog_store.get_reviews("1") == {}

    def test_add_review_unknown_book(self, review_workflow):
        """Test that reviewing an unknown book is not found."""
        with pytest.raises(NotFound) as exc_info:
            review_workflow.add_review(identity_for("alice"), "999", "x")

        assert exc_info.value.message == "Book not found"

    def test_delete_own_review(self, review_workflow, catalog_store):
        """Test deleting the caller's review."""
        alice = identity_for("alice")
        review_workflow.add_review(alice, "1", "x")

        review_workflow.delete_review(alice, "1")

        assert catalog_store.get_reviews("1") == {}

    def test_cannot_delete_other_users_review(self, review_workflow, catalog_store):
        """Test that deleting keys on the caller, leaving other reviews alone."""
        review_workflow.add_review(identity_for("alice"), "1", "x")

        with pytest.raises(NotFound):
            review_workflow.delete_review(identity_for("bob"), "1")

        assert catalog_store.get_reviews("1") == {"alice": "x"}

    def test_delete_twice(self, review_workflow):
        """Test that the second delete reports not found."""
        alice = identity_for("alice")
        review_workflow.add_review(alice, "1", "x")
        review_workflow.delete_review(alice, "1")

        with pytest.raises(NotFound):
            review_workflow.delete_review(alice, "1")

    def test_delete_unknown_book(self, review_workflow):
        """Test that deleting on an unknown book is not found."""
        with pytest.raises(NotFound) as exc_info:
            review_workflow.delete_review(identity_for("alice"), "999")

        assert exc_info.value.status_code == 404
