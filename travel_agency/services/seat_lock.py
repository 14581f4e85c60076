import logging
from typing import Iterable
from redis.asyncio import Redis

logger = logging.getLogger(__name__)

# all keys of a package share the {package:id} hash tag, so they land on the same cluster slot
CLAIM_SEATS_SCRIPT = """
-- ARGV[1] = owner
-- ARGV[2] = ttl
-- ARGV[3] = package_id
-- ARGV[4..N] = seat numbers

local owner = ARGV[1]
local ttl = tonumber(ARGV[2])
local key_prefix = "lock:{package:" .. ARGV[3] .. "}"

-- check every seat before taking any
for i = 4, #ARGV do
    if redis.call('EXISTS', key_prefix .. ":seat:" .. ARGV[i]) == 1 then
        return 0
    end
end

local set_key = key_prefix .. ":seats"
for i = 4, #ARGV do
    redis.call('SET', key_prefix .. ":seat:" .. ARGV[i], owner, 'EX', ttl, 'NX')
    redis.call('SADD', set_key, ARGV[i])
end
redis.call('EXPIRE', set_key, ttl)

return 1
"""

RELEASE_SEATS_SCRIPT = """
-- ARGV[1] = owner
-- ARGV[2] = package_id
-- ARGV[3..N] = seat numbers

local owner = ARGV[1]
local key_prefix = "lock:{package:" .. ARGV[2] .. "}"
local set_key = key_prefix .. ":seats"
local released = 0

for i = 3, #ARGV do
    local lock_key = key_prefix .. ":seat:" .. ARGV[i]
    if redis.call('GET', lock_key) == owner then
        redis.call('DEL', lock_key)
        redis.call('SREM', set_key, ARGV[i])
        released = released + 1
    end
end

return released
"""


def seat_key(package_id: int, seat: int) -> str:
    return f"lock:{{package:{package_id}}}:seat:{seat}"


def seats_set_key(package_id: int) -> str:
    return f"lock:{{package:{package_id}}}:seats"


class SeatLockManager:
    """Short-lived, all-or-nothing claims on bus seats while a booking is written."""

    async def acquire(self, redis: Redis, package_id: int, seats: Iterable[int], owner: str, ttl: int) -> bool:
        seat_numbers = sorted(set(seats))
        if not seat_numbers:
            return True
        args = [owner, str(ttl), str(package_id)] + [str(s) for s in seat_numbers]
        result = await redis.eval(CLAIM_SEATS_SCRIPT, 0, *args)
        acquired = int(result) == 1
        if acquired:
            logger.info("Locked seats %s of package %s for %s", seat_numbers, package_id, owner)
        else:
            logger.warning("Seats %s of package %s are already locked", seat_numbers, package_id)
        return acquired

    async def release(self, redis: Redis, package_id: int, seats: Iterable[int], owner: str) -> int:
        seat_numbers = sorted(set(seats))
        if not seat_numbers:
            return 0
        args = [owner, str(package_id)] + [str(s) for s in seat_numbers]
        released = int(await redis.eval(RELEASE_SEATS_SCRIPT, 0, *args))
        logger.info("Released %s seat locks of package %s for %s", released, package_id, owner)
        return released

    async def locked_seats(self, redis: Redis, package_id: int) -> list[int]:
        members = await redis.smembers(seats_set_key(package_id))
        locked = []
        for member in members:
            seat = int(member)
            # the set outlives individual keys that already expired
            if await redis.exists(seat_key(package_id, seat)):
                locked.append(seat)
        return sorted(locked)


seat_lock_manager = SeatLockManager()
