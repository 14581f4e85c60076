from travel_agency.services.seat_lock import seat_key, seat_lock_manager


async def test_acquire_is_all_or_nothing(redis_client):
    assert await seat_lock_manager.acquire(redis_client, 1, [1, 2], "owner-a", ttl=30)
    # seat 2 is taken, so seat 3 must not be locked either
    assert not await seat_lock_manager.acquire(redis_client, 1, [2, 3], "owner-b", ttl=30)
    assert await seat_lock_manager.locked_seats(redis_client, 1) == [1, 2]
    assert await redis_client.get(seat_key(1, 3)) is None


async def test_locks_are_scoped_per_package(redis_client):
    assert await seat_lock_manager.acquire(redis_client, 1, [5], "owner-a", ttl=30)
    assert await seat_lock_manager.acquire(redis_client, 2, [5], "owner-b", ttl=30)


async def test_release_only_removes_own_locks(redis_client):
    await seat_lock_manager.acquire(redis_client, 1, [1, 2], "owner-a", ttl=30)
    assert await seat_lock_manager.release(redis_client, 1, [1, 2], "owner-b") == 0
    assert await seat_lock_manager.locked_seats(redis_client, 1) == [1, 2]

    assert await seat_lock_manager.release(redis_client, 1, [1, 2], "owner-a") == 2
    assert await seat_lock_manager.locked_seats(redis_client, 1) == []
    assert await seat_lock_manager.acquire(redis_client, 1, [2, 3], "owner-b", ttl=30)


async def test_locks_expire_with_ttl(redis_client):
    await seat_lock_manager.acquire(redis_client, 1, [4], "owner-a", ttl=30)
    ttl = await redis_client.ttl(seat_key(1, 4))
    assert 0 < ttl <= 30
    # an expired key no longer counts even if the set still lists it
    await redis_client.delete(seat_key(1, 4))
    assert await seat_lock_manager.locked_seats(redis_client, 1) == []


async def test_empty_seat_list_is_a_noop(redis_client):
    assert await seat_lock_manager.acquire(redis_client, 1, [], "owner-a", ttl=30)
    assert await seat_lock_manager.release(redis_client, 1, [], "owner-a") == 0
