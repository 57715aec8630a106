"""Local cache, debounced remote writes and load fallback."""

import asyncio
import json

import pytest

from studydeck.modules.study.models import DisplayState, ProgressSnapshot, StudyMode
from studydeck.modules.study.store import LocalProgressCache, ProgressStore, exit_snapshot


def snap(deck_id="deck-5", index=0, **kw):
    return ProgressSnapshot(deck_id=deck_id, current_index=index, total_cards=5, **kw)


class TestLocalProgressCache:
    def test_read_missing_file(self, cache):
        assert cache.read() is None

    def test_write_then_read(self, cache):
        s = snap(index=3, learned_set=["c1"])
        assert cache.write(s)
        assert cache.read() == s

    def test_single_slot_is_overwritten(self, cache):
        cache.write(snap("a", 1))
        cache.write(snap("b", 2))
        assert cache.read().deck_id == "b"

    def test_other_keys_survive(self, cache):
        cache.path.parent.mkdir(parents=True, exist_ok=True)
        cache.path.write_text(json.dumps({"theme": "dark"}))
        cache.write(snap())
        data = json.loads(cache.path.read_text())
        assert data["theme"] == "dark"
        assert data["test_progress"]["deckId"] == "deck-5"

    def test_corrupt_file_reads_as_empty(self, cache):
        cache.path.parent.mkdir(parents=True, exist_ok=True)
        cache.path.write_text("{not json")
        assert cache.read() is None
        assert cache.write(snap())
        assert cache.read() is not None

    def test_malformed_entry_is_ignored(self, cache):
        cache.path.parent.mkdir(parents=True, exist_ok=True)
        cache.path.write_text(json.dumps({"test_progress": {"currentIndex": -4}}))
        assert cache.read() is None

    def test_clear(self, cache):
        cache.write(snap())
        assert cache.clear()
        assert cache.read() is None
        assert cache.clear()

    def test_write_failure_returns_false(self, tmp_path, caplog):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        cache = LocalProgressCache(blocker / "progress.json", "k")
        assert cache.write(snap()) is False
        assert cache.read() is None
        assert "Local progress cache write failed" in caplog.text

    def test_clear_failure_returns_false(self, cache, monkeypatch):
        cache.write(snap())

        def refuse(data):
            raise PermissionError("read-only")

        monkeypatch.setattr(cache, "_write_all", refuse)
        assert cache.clear() is False
        assert cache.read() is not None

    def test_separate_storage_keys(self, tmp_path):
        path = tmp_path / "p.json"
        a = LocalProgressCache(path, "a")
        b = LocalProgressCache(path, "b")
        a.write(snap("deck-a"))
        b.write(snap("deck-b"))
        assert a.read().deck_id == "deck-a"
        assert b.read().deck_id == "deck-b"


class TestExitSnapshot:
    @pytest.mark.parametrize("display", [DisplayState.REVIEW_NEEDED, DisplayState.REVIEWING])
    def test_review_states_resume_at_first_review_card(self, display):
        s = snap(index=4, mode=StudyMode.NORMAL, review_set=["c2"])
        out = exit_snapshot(s, display)
        assert out.mode == StudyMode.REVIEW
        assert out.current_index == 0
        assert out.review_set == ["c2"]

    @pytest.mark.parametrize("display", [DisplayState.STUDYING, DisplayState.COMPLETED])
    def test_other_states_keep_position(self, display):
        s = snap(index=3)
        assert exit_snapshot(s, display) is s


async def test_save_writes_local_now_and_remote_once(store, remote, cache):
    for i in range(4):
        store.save(snap(index=i))
    assert cache.read().current_index == 3
    assert remote.writes == []
    assert store.pending

    await asyncio.sleep(0.1)
    await store.drain()
    assert [w.current_index for w in remote.writes] == [3]
    assert not store.pending


async def test_flush_cancels_debounce_and_sends(store, remote, cache):
    store.save(snap(index=1))
    task = store.flush(snap(index=2))
    assert not store.pending
    await task
    await asyncio.sleep(0.1)
    assert [w.current_index for w in remote.writes] == [2]
    assert cache.read().current_index == 2


async def test_remote_failure_is_swallowed(store, remote, cache, caplog):
    remote.fail_write = True
    await store.flush(snap(index=2))
    assert remote.writes == []
    assert cache.read().current_index == 2
    assert "Remote progress write dropped" in caplog.text


async def test_close_stops_pending_write(store, remote):
    store.save(snap(index=1))
    store.close()
    await asyncio.sleep(0.1)
    assert remote.writes == []


async def test_stores_do_not_share_timers(remote, tmp_path):
    a = ProgressStore(remote, LocalProgressCache(tmp_path / "a.json"), debounce_seconds=0.05)
    b = ProgressStore(remote, LocalProgressCache(tmp_path / "b.json"), debounce_seconds=0.05)
    a.save(snap("deck-a"))
    b.save(snap("deck-b"))
    await asyncio.sleep(0.1)
    await a.drain()
    await b.drain()
    assert sorted(w.deck_id for w in remote.writes) == ["deck-a", "deck-b"]


async def test_load_prefers_remote(store, remote, cache):
    remote.progress["deck-5"] = snap(index=4)
    cache.write(snap(index=1))
    assert (await store.load("deck-5")).current_index == 4


async def test_load_falls_back_to_cache(store, remote, cache):
    remote.fail_fetch_progress = True
    cache.write(snap(index=2))
    assert (await store.load("deck-5")).current_index == 2


async def test_load_without_remote_record_uses_cache(store, cache):
    cache.write(snap(index=2))
    assert (await store.load("deck-5")).current_index == 2


async def test_load_ignores_cache_for_other_deck(store, remote, cache):
    remote.fail_fetch_progress = True
    cache.write(snap("other", 3))
    loaded = await store.load("deck-5")
    assert loaded == ProgressSnapshot.empty("deck-5").model_copy(
        update={"timestamp": loaded.timestamp}
    )
    # The other deck's entry is left in place
    assert cache.read().deck_id == "other"


def test_resolve_rejects_remote_for_other_deck(store, cache):
    cache.write(snap(index=1))
    resolved = store.resolve("deck-5", snap("other", 4))
    assert resolved.deck_id == "deck-5"
    assert resolved.current_index == 1


async def test_reset_clears_matching_cache_and_remote(store, remote, cache):
    remote.progress["deck-5"] = snap(index=4)
    cache.write(snap(index=4))
    await store.reset("deck-5")
    assert cache.read() is None
    assert remote.deletes == ["deck-5"]
    assert "deck-5" not in remote.progress


async def test_reset_keeps_cache_of_other_deck(store, cache):
    cache.write(snap("other", 1))
    await store.reset("deck-5")
    assert cache.read().deck_id == "other"


async def test_remote_write_survives_local_failure(remote, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    store = ProgressStore(
        remote, LocalProgressCache(blocker / "progress.json", "k"), debounce_seconds=0.02
    )
    store.save(snap(index=3))
    assert store.pending
    await asyncio.sleep(0.08)
    await store.drain()
    assert [w.current_index for w in remote.writes] == [3]


def test_save_without_event_loop_writes_locally_only(store, remote, cache):
    store.save(snap(index=2))
    assert cache.read().current_index == 2
    assert not store.pending
    assert store.flush(snap(index=3)) is None
    assert cache.read().current_index == 3
    assert remote.writes == []
