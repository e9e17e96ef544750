from storefront.events import EventEmitter, EventType, NoticeLevel, emit_to
from storefront.events.models import Notice, error, info, success


def test_notice_helpers_set_level_and_payload() -> None:
    notice = success(EventType.ORDER_PLACED, "Order placed successfully!", "Order ID: ABCD1234", order_id="abcd1234")

    assert notice.level == NoticeLevel.SUCCESS
    assert notice.payload == {"order_id": "abcd1234"}
    assert not notice.is_error
    assert error(EventType.REMOTE_ERROR, "Error").is_error
    assert info(EventType.CART_CLEARED, "Cart cleared").level == NoticeLevel.INFO

    payload = notice.model_dump(mode="json")
    assert payload["type"] == "order_placed"
    assert "timestamp" in payload


def test_emitter_fans_out_and_unsubscribes() -> None:
    emitter = EventEmitter()
    received = []
    unsubscribe = emitter.subscribe(received.append)

    emitter.emit(info(EventType.CART_CLEARED, "Cart cleared"))
    unsubscribe()
    emitter.emit(info(EventType.CART_CLEARED, "Cart cleared"))

    assert len(received) == 1
    assert received[0].event_id is not None
    assert len(emitter.get_events()) == 2


def test_failing_listener_does_not_break_emit(caplog) -> None:
    emitter = EventEmitter()

    def broken(_: Notice) -> None:
        raise RuntimeError("boom")

    seen = []
    emitter.subscribe(broken)
    emitter.subscribe(seen.append)
    emitter.emit(error(EventType.REMOTE_ERROR, "Error"))

    assert len(seen) == 1
    assert any("Notice listener failed" in record.getMessage() for record in caplog.records)


def test_events_since_survives_trimming() -> None:
    emitter = EventEmitter(max_events=2)
    for index in range(4):
        emitter.emit(info(EventType.CART_ITEM_ADDED, f"Added {index}"))

    events, cursor = emitter.events_since(0)
    assert [event.title for event in events] == ["Added 2", "Added 3"]
    assert cursor == 4
    assert emitter.events_since(cursor) == ([], 4)

    emitter.clear()
    assert emitter.get_events() == []


def test_emit_to_tolerates_missing_emitter() -> None:
    emit_to(None, info(EventType.CART_CLEARED, "Cart cleared"))
