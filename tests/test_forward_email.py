"""
Tests for a single poll tick: ordering, dedup, failure isolation and persistence.
"""
import pytest

from gmail2tg.application.use_cases.forward_email import ForwardEmailUseCase
from gmail2tg.application.use_cases.reconcile_labels import LabelReconciler
from gmail2tg.domain.entities.forward_state import ForwardState

from tests.conftest import plain_message


CHAT_ID = 12345


@pytest.fixture
def make_use_case(mailbox, notifier, store, clock):
    def _make(**kwargs) -> ForwardEmailUseCase:
        return ForwardEmailUseCase(
            mailbox=mailbox,
            notifier=notifier,
            reconciler=LabelReconciler(mailbox),
            store=store,
            chat_id=CHAT_ID,
            label_id=kwargs.pop("label_id", "Label_1"),
            clock=clock,
            **kwargs,
        )
    return _make


def _state(clock) -> ForwardState:
    return ForwardState(start_after=clock.now)


def test_query_window_grows_with_time_since_watermark(make_use_case, mailbox, clock):
    use_case = make_use_case()
    state = _state(clock)

    use_case.run_tick(state)
    clock.advance(5 * 60_000 + 30_000)
    use_case.run_tick(state)

    assert mailbox.queries == [
        ("in:inbox newer_than:1m", 10),
        ("in:inbox newer_than:5m", 10),
    ]


def test_messages_are_delivered_oldest_first(make_use_case, mailbox, notifier, clock):
    mailbox.ids = ["id3", "id2", "id1"]
    for message_id in mailbox.ids:
        mailbox.messages[message_id] = plain_message(message_id, body=f"body {message_id}")

    make_use_case().run_tick(_state(clock))

    bodies = [text.rsplit("\n", 1)[-1] for _, text in notifier.sent]
    assert bodies == ["body id1", "body id2", "body id3"]
    assert all(chat_id == CHAT_ID for chat_id, _ in notifier.sent)


def test_already_processed_ids_are_not_delivered_again(make_use_case, mailbox, notifier, clock):
    mailbox.ids = ["m2", "m1"]
    state = _state(clock)
    state.mark_processed("m1", clock.now)

    result = make_use_case().run_tick(state)

    assert result.skipped == 1
    assert result.forwarded == 1
    assert len(notifier.sent) == 1
    assert "body of m2" in notifier.sent[0][1]

    # same listing again: nothing new to deliver
    result = make_use_case().run_tick(state)
    assert result.forwarded == 0
    assert len(notifier.sent) == 1


def test_watermark_is_never_moved_by_ticks(make_use_case, mailbox, clock):
    state = _state(clock)
    start = state.start_after
    use_case = make_use_case()

    for ids in (["a"], ["c", "b"], []):
        mailbox.ids = ids
        clock.advance(15_000)
        use_case.run_tick(state)
        assert state.start_after == start


def test_reconcile_failure_still_marks_processed(make_use_case, mailbox, notifier, store, clock):
    mailbox.ids = ["m1"]
    mailbox.fail_modify.add("m1")
    state = _state(clock)

    result = make_use_case().run_tick(state)

    assert len(notifier.sent) == 1
    assert state.is_processed("m1")
    assert result.unlabeled == 1
    assert store.saves[-1]["processed"] == {"m1": clock.now}


def test_delivery_failure_leaves_message_for_retry(make_use_case, mailbox, notifier, clock):
    mailbox.ids = ["m3", "m2", "m1"]
    mailbox.messages["m2"] = plain_message("m2", body="UNDELIVERABLE")
    notifier.fail_texts_containing.add("UNDELIVERABLE")
    state = _state(clock)

    result = make_use_case().run_tick(state)

    assert result.forwarded == 2
    assert result.failed == 1
    assert not state.is_processed("m2")
    assert state.is_processed("m1") and state.is_processed("m3")
    # not reconciled either: the mailbox still shows it unread
    assert [message_id for message_id, _ in mailbox.modified] == ["m1", "m3"]


def test_delivery_exception_is_isolated(make_use_case, mailbox, notifier, clock):
    mailbox.ids = ["m2", "m1"]
    mailbox.messages["m1"] = plain_message("m1", body="BOOM")
    notifier.raise_texts_containing.add("BOOM")
    state = _state(clock)

    result = make_use_case().run_tick(state)

    assert result.failed == 1
    assert not state.is_processed("m1")
    assert state.is_processed("m2")


def test_fetch_failure_is_isolated(make_use_case, mailbox, notifier, clock):
    mailbox.ids = ["m2", "m1"]
    mailbox.fail_get.add("m1")
    state = _state(clock)

    result = make_use_case().run_tick(state)

    assert result.failed == 1
    assert len(notifier.sent) == 1
    assert list(state.processed) == ["m2"]


def test_listing_failure_propagates_and_nothing_is_saved(make_use_case, mailbox, store, clock):
    mailbox.fail_list = True
    with pytest.raises(Exception):
        make_use_case().run_tick(_state(clock))
    assert store.saves == []


def test_degraded_mode_omits_label(make_use_case, mailbox, clock):
    mailbox.ids = ["m1"]
    make_use_case(label_id=None).run_tick(_state(clock))

    (_, change), = mailbox.modified
    assert change.add == []
    assert change.remove == ["UNREAD"]


def test_state_is_saved_only_when_progress_was_made(make_use_case, mailbox, store, clock):
    state = _state(clock)
    use_case = make_use_case()

    use_case.run_tick(state)
    assert store.saves == []

    mailbox.ids = ["m1"]
    use_case.run_tick(state)
    assert len(store.saves) == 1


def test_compaction_runs_after_new_markings(make_use_case, mailbox, store, clock):
    state = _state(clock)
    for i in range(800):
        state.mark_processed(f"old{i}", i)
    mailbox.ids = ["new"]

    result = make_use_case().run_tick(state)

    assert result.evicted == 301
    assert len(state.processed) == 500
    assert state.is_processed("new")
    assert "old0" not in state.processed
    assert len(store.saves[-1]["processed"]) == 500


def test_max_per_tick_is_passed_to_listing(make_use_case, mailbox, clock):
    make_use_case(max_per_tick=3).run_tick(_state(clock))
    assert mailbox.queries[0][1] == 3
