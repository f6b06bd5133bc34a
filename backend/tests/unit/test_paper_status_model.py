from __future__ import annotations

from uuid import uuid4

import pytest
from pydantic import ValidationError

from app.models.paper import DECISION_STATUSES, Paper, PaperStatus, PaperUpdate, normalize_status


def _paper(status: str) -> Paper:
    return Paper(id=uuid4(), title="t", author_id=uuid4(), status=status)


def test_exactly_seven_statuses() -> None:
    assert PaperStatus.values() == [
        "draft",
        "submitted",
        "under_review",
        "approved",
        "rejected",
        "recommended_for_publication",
        "published",
    ]


def test_terminal_statuses_have_no_outgoing_edges() -> None:
    assert PaperStatus.allowed_next("published") == set()
    assert PaperStatus.allowed_next("rejected") == set()
    assert DECISION_STATUSES == {"published", "rejected"}


def test_allowed_next_from_submitted() -> None:
    assert PaperStatus.allowed_next("submitted") == {"under_review", "recommended_for_publication", "rejected"}
    assert PaperStatus.allowed_next("unknown") == set()


def test_normalize_status() -> None:
    assert normalize_status(" Published ") == "published"
    assert normalize_status("archived") is None
    assert normalize_status("") is None


def test_update_request_rejects_unknown_status() -> None:
    with pytest.raises(ValidationError):
        PaperUpdate(title="t", status="archived")


def test_paper_predicates() -> None:
    draft = _paper("draft")
    assert draft.is_draft() and draft.can_edit() and draft.can_submit()
    assert not draft.can_review()

    assert _paper("submitted").can_review()
    assert _paper("under_review").can_review()
    assert not _paper("approved").can_review()
    assert _paper("published").is_published()
    assert _paper("rejected").is_rejected()
    assert not _paper("submitted").can_edit()
