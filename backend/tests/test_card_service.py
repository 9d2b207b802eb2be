import io
from datetime import timedelta
from pathlib import Path

import pytest

from app.errors import DeliveryFailure, InvalidCardRequest, NotFound, PermissionDenied
from app.models.card import ECard, ViewRecord
from app.models.sender import Sender
from app.models.template import PremadeTemplate
from app.schemas.card import CardCreate
from app.services import cards as card_service
from conftest import T0, RecordingSender


def _params(**overrides) -> CardCreate:
    data = {
        "sender_name": "Sam Sender",
        "sender_email": "sam@example.com",
        "recipient_name": "Riley",
        "recipient_email": "riley@example.com",
        "message": "Happy Birthday!",
    }
    data.update(overrides)
    return CardCreate(**data)


def test_create_without_schedule_is_due_now(db, clock, artwork_store):
    card = card_service.create_card(db, _params(), artwork_store, clock=clock)

    assert card.created_date == T0
    assert card.scheduled_send_date == T0
    assert card.expiry_date == T0 + timedelta(days=14)
    assert card.is_sent is False
    assert card.sent_date is None
    assert card.view_count == 0
    assert card.first_viewed_date is None


def test_create_with_future_schedule_keeps_date(db, clock, artwork_store):
    send_at = T0 + timedelta(days=7)

    card = card_service.create_card(db, _params(scheduled_send_date=send_at), artwork_store, clock=clock)

    assert card.scheduled_send_date == send_at
    assert card.expiry_date == T0 + timedelta(days=30)


def test_repeat_sender_is_reused_by_email(db, clock, artwork_store):
    first = card_service.create_card(db, _params(), artwork_store, clock=clock)
    second = card_service.create_card(
        db, _params(sender_email="SAM@example.com", recipient_name="Jo"), artwork_store, clock=clock,
    )

    assert first.sender_id == second.sender_id
    assert db.query(Sender).count() == 1


def test_uploaded_art_is_saved(db, clock, artwork_store):
    upload = card_service.ArtUpload(filename="../../sunset.png", stream=io.BytesIO(b"png-bytes"), size=9)

    card = card_service.create_card(db, _params(), artwork_store, clock=clock, art_upload=upload)

    saved = Path(card.custom_art_path)
    assert saved.parent == artwork_store.custom_dir
    assert saved.name.endswith("_sunset.png")
    assert saved.read_bytes() == b"png-bytes"


def test_both_art_kinds_are_rejected(db, clock, artwork_store):
    db.add(PremadeTemplate(id="balloons", name="Balloons", category="Birthday", icon_emoji="🎈"))
    db.commit()
    upload = card_service.ArtUpload(filename="a.png", stream=io.BytesIO(b"x"), size=1)

    with pytest.raises(InvalidCardRequest):
        card_service.create_card(
            db, _params(premade_art_id="balloons"), artwork_store, clock=clock, art_upload=upload,
        )

    assert db.query(ECard).count() == 0


def test_oversized_or_non_image_upload_is_rejected(db, clock, artwork_store):
    big = card_service.ArtUpload(filename="a.png", stream=io.BytesIO(b"x"), size=11)
    script = card_service.ArtUpload(filename="a.exe", stream=io.BytesIO(b"x"), size=1)

    with pytest.raises(InvalidCardRequest):
        card_service.create_card(db, _params(), artwork_store, clock=clock, art_upload=big, max_upload_bytes=10)
    with pytest.raises(InvalidCardRequest):
        card_service.create_card(db, _params(), artwork_store, clock=clock, art_upload=script)

    assert list(artwork_store.custom_dir.iterdir()) == []


def test_unknown_or_inactive_premade_template_is_not_found(db, clock, artwork_store):
    db.add(PremadeTemplate(id="retired", name="Retired", category="Old", icon_emoji="", is_active=False))
    db.commit()

    with pytest.raises(NotFound):
        card_service.create_card(db, _params(premade_art_id="nope"), artwork_store, clock=clock)
    with pytest.raises(NotFound):
        card_service.create_card(db, _params(premade_art_id="retired"), artwork_store, clock=clock)


def test_premade_template_is_recorded(db, clock, artwork_store):
    db.add(PremadeTemplate(id="balloons", name="Balloons", category="Birthday", icon_emoji="🎈"))
    db.commit()

    card = card_service.create_card(db, _params(premade_art_id="balloons"), artwork_store, clock=clock)

    assert card.premade_art_id == "balloons"
    assert card.custom_art_path is None


def test_list_cards_for_sender_newest_first(db, clock, artwork_store):
    older = card_service.create_card(db, _params(), artwork_store, clock=clock)
    clock.advance(hours=1)
    newer = card_service.create_card(db, _params(), artwork_store, clock=clock)
    card_service.create_card(db, _params(sender_email="other@example.com"), artwork_store, clock=clock)

    cards = card_service.list_cards_for_sender(db, "sam@example.com")

    assert [c.id for c in cards] == [newer.id, older.id]
    assert card_service.list_cards_for_sender(db, "nobody@example.com") == []


def test_resend_marks_sent_on_success(db, clock, make_card):
    card = make_card(is_sent=False)
    sender = RecordingSender()
    clock.advance(days=2)

    resent = card_service.resend_card(db, card.id, sender, clock=clock, owner_email="Sam@Example.com")

    assert resent.is_sent is True
    assert resent.sent_date == T0 + timedelta(days=2)
    assert sender.sent == [(card.id, "sam@example.com")]


def test_resend_requires_ownership(db, clock, make_card):
    card = make_card()

    with pytest.raises(PermissionDenied):
        card_service.resend_card(db, card.id, RecordingSender(), clock=clock, owner_email="mallory@example.com")


def test_resend_failure_leaves_card_unsent(db, clock, make_card):
    card = make_card()

    class BrokenSender:
        def send(self, card, sender):
            raise DeliveryFailure("SMTP_HOST is not configured")

    with pytest.raises(DeliveryFailure):
        card_service.resend_card(db, card.id, BrokenSender(), clock=clock)

    db.expire_all()
    assert db.get(ECard, card.id).is_sent is False


def test_delete_card_removes_views_and_art(db, make_card, artwork_store):
    art = artwork_store.custom_dir / "card.png"
    art.write_bytes(b"x")
    card = make_card(custom_art_path=str(art))
    db.add(ViewRecord(ecard_id=card.id, viewed_date=T0))
    db.commit()

    card_service.delete_card(db, card.id, artwork_store)

    assert db.query(ECard).count() == 0
    assert db.query(ViewRecord).count() == 0
    assert not art.exists()


def test_delete_unknown_card_is_not_found(db, artwork_store):
    with pytest.raises(NotFound):
        card_service.delete_card(db, "missing", artwork_store)
