from datetime import date

from django.core.cache import cache

from core.caching import CacheKeys, acquire_lock, release_lock


def test_slot_bucket_key_is_stable():
    key = CacheKeys.slot_bucket(3, 7, date(2025, 3, 1))
    assert key == "appt:slot:3:7:2025-03-01"
    assert CacheKeys.busy_intervals(key) == "appt:busy:v1:appt:slot:3:7:2025-03-01"


def test_acquire_lock_is_exclusive():
    assert acquire_lock("bucket-a", timeout=5) is True
    assert acquire_lock("bucket-a", timeout=5) is False
    release_lock("bucket-a")
    assert acquire_lock("bucket-a", timeout=5) is True
    release_lock("bucket-a")


def test_acquire_lock_waits_until_deadline(mocker):
    add = mocker.patch.object(cache, "add", side_effect=[False, False, True])
    sleep = mocker.patch("core.caching.time.sleep")

    assert acquire_lock("bucket-b", wait=10, poll_interval=0.01) is True
    assert add.call_count == 3
    assert sleep.call_count == 2


def test_acquire_lock_without_wait_does_not_sleep(mocker):
    mocker.patch.object(cache, "add", return_value=False)
    sleep = mocker.patch("core.caching.time.sleep")

    assert acquire_lock("bucket-c") is False
    sleep.assert_not_called()


def test_locks_do_not_collide_with_plain_keys():
    cache.set("bucket-d", "valor")
    assert acquire_lock("bucket-d") is True
    assert cache.get("bucket-d") == "valor"
    release_lock("bucket-d")
