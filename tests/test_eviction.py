"""
Tests for per-file eviction timers.
"""

import asyncio

from gateway.errors import LocalIOFailure
from gateway.storage import CacheIndex, DiskCache


def make_index(cache_dir, seconds):
    return CacheIndex(DiskCache(str(cache_dir)), eviction_seconds=seconds)


class TestCacheIndex:
    """At most one timer per filename; firing deletes the file."""

    def test_timer_deletes_file_after_window(self, cache_dir):
        path = cache_dir / "a.jpg"
        path.write_bytes(b"x")

        async def scenario():
            index = make_index(cache_dir, 0.1)
            index.touch("a.jpg", path)
            assert "a.jpg" in index
            await asyncio.sleep(0.3)
            return index

        index = asyncio.run(scenario())

        assert not path.exists(), "File should be evicted"
        assert "a.jpg" not in index, "Index entry should be removed on fire"

    def test_touch_replaces_existing_timer(self, cache_dir):
        path = cache_dir / "a.jpg"
        path.write_bytes(b"x")

        async def scenario():
            index = make_index(cache_dir, 60)
            first = index.touch("a.jpg", path).timer_handle
            second = index.touch("a.jpg", path).timer_handle
            cancelled = first.cancelled()
            still_live = not second.cancelled()
            index.cancel_all()
            return cancelled, still_live, len(index)

        cancelled, still_live, remaining = asyncio.run(scenario())

        assert cancelled, "Previous timer must be cancelled"
        assert still_live
        assert remaining == 0

    def test_touch_postpones_deletion(self, cache_dir):
        """Access at t=0 and t=0.3 with a 0.5s window: present at 0.65, gone by 1.05."""
        path = cache_dir / "a.jpg"
        path.write_bytes(b"x")

        async def scenario():
            index = make_index(cache_dir, 0.5)
            index.touch("a.jpg", path)
            await asyncio.sleep(0.3)
            index.touch("a.jpg", path)
            await asyncio.sleep(0.35)
            present_mid = path.exists()
            await asyncio.sleep(0.4)
            return present_mid, path.exists()

        present_mid, present_end = asyncio.run(scenario())

        assert present_mid, "Re-access should postpone eviction"
        assert not present_end, "File should be evicted after the last window"

    def test_last_touched_at_advances(self, cache_dir):
        path = cache_dir / "a.jpg"
        path.write_bytes(b"x")

        async def scenario():
            index = make_index(cache_dir, 60)
            first = index.touch("a.jpg", path).last_touched_at
            await asyncio.sleep(0.01)
            second = index.touch("a.jpg", path).last_touched_at
            index.cancel_all()
            return first, second

        first, second = asyncio.run(scenario())
        assert second > first

    def test_missing_file_on_fire_is_not_an_error(self, cache_dir):
        path = cache_dir / "gone.jpg"

        async def scenario():
            index = make_index(cache_dir, 0.05)
            index.touch("gone.jpg", path)
            await asyncio.sleep(0.2)
            return index

        index = asyncio.run(scenario())
        assert "gone.jpg" not in index

    def test_delete_failure_still_clears_entry(self, cache_dir, monkeypatch):
        path = cache_dir / "stuck.jpg"
        path.write_bytes(b"x")

        def failing_delete(filename):
            raise LocalIOFailure("permission denied", key=filename)

        async def scenario():
            index = make_index(cache_dir, 0.05)
            monkeypatch.setattr(index.disk, "delete", failing_delete)
            index.touch("stuck.jpg", path)
            await asyncio.sleep(0.2)
            return index

        index = asyncio.run(scenario())

        assert "stuck.jpg" not in index, "Entry removed even when delete fails"
        assert path.exists()

    def test_cancel_keeps_file(self, cache_dir):
        path = cache_dir / "a.jpg"
        path.write_bytes(b"x")

        async def scenario():
            index = make_index(cache_dir, 0.05)
            index.touch("a.jpg", path)
            assert index.cancel("a.jpg") is True
            assert index.cancel("a.jpg") is False
            await asyncio.sleep(0.2)

        asyncio.run(scenario())
        assert path.exists(), "Cancelled timer must not delete"

    def test_cancel_all(self, cache_dir):
        paths = []
        for name in ("a.jpg", "b.jpg", "c.jpg"):
            path = cache_dir / name
            path.write_bytes(b"x")
            paths.append(path)

        async def scenario():
            index = make_index(cache_dir, 0.05)
            for path in paths:
                index.touch(path.name, path)
            count = index.cancel_all()
            await asyncio.sleep(0.2)
            return count, len(index)

        count, remaining = asyncio.run(scenario())

        assert count == 3
        assert remaining == 0
        assert all(path.exists() for path in paths)
