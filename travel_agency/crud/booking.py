import logging
from typing import Optional
from uuid import uuid4
from redis.asyncio import Redis
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from travel_agency.core.config import settings
from travel_agency.core.exceptions import (InsufficientSeatsError, InvalidStatusTransitionError, NotFoundError,
                                           PermissionDeniedError, SeatUnavailableError, ValidationFailedError)
from travel_agency.crud.package import crud_package, seat_layout_cache_key
from travel_agency.models import utcnow
from travel_agency.models.affiliate import Affiliate, AffiliateReferral, AffiliateStatus
from travel_agency.models.booking import Booking, BookingStatus, PaymentStatus
from travel_agency.models.package import Package, PackageStatus
from travel_agency.models.user import User
from travel_agency.schemas.booking import BookingCreate, BookingUpdate
from travel_agency.services.commission import calculate_commission
from travel_agency.services.pricing import PassengerBreakdown, calculate_total_price, format_brl
from travel_agency.services.seat_lock import seat_lock_manager

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELED},
    BookingStatus.CONFIRMED: {BookingStatus.PAID, BookingStatus.CANCELED},
    BookingStatus.PAID: {BookingStatus.CANCELED},
    BookingStatus.CANCELED: set(),
}


def seated_passengers(num_passengers: int, passenger_details: Optional[dict]) -> int:
    """Passengers that take a seat, children riding on a lap do not."""
    if not passenger_details:
        return num_passengers
    return PassengerBreakdown(**passenger_details).seated


class CRDBooking:

    # 1. validate the request and price it, the db package row is the source of truth.
    # 2. lock the seats in redis, all or nothing.
    # 3. lock the package row and re-check occupancy against the non-canceled bookings.
    # 4. decrement available seats with a guarded update.
    # 5. insert the booking and the affiliate referral, commit.
    # 6. on any failure rollback. always release the locks and drop the cached seat layout.

    def _validate_seats(self, package: Package, selected_seats: Optional[list[int]], seated: int) -> list[int]:
        if not package.has_seat_map:
            return []
        if not selected_seats:
            raise ValidationFailedError("Select your seats before booking")
        if len(set(selected_seats)) != len(selected_seats):
            raise ValidationFailedError("A seat can only be selected once")
        out_of_range = [s for s in selected_seats if s < 1 or s > package.total_seats]
        if out_of_range:
            raise ValidationFailedError(
                f"Seats out of range 1..{package.total_seats}: {', '.join(str(s) for s in sorted(out_of_range))}")
        if len(selected_seats) != seated:
            raise ValidationFailedError(
                f"Select exactly {seated} seats, {len(selected_seats)} selected")
        return sorted(selected_seats)

    async def _find_active_affiliate(self, db: AsyncSession, code: Optional[str]):
        if not code or not code.strip():
            return None
        result = await db.execute(select(Affiliate).where(
            Affiliate.code == code.strip().upper(),
            Affiliate.status == AffiliateStatus.ACTIVE))
        return result.scalar_one_or_none()

    async def create_booking(self,
                             db: AsyncSession,
                             redis: Redis,
                             data: BookingCreate,
                             user: Optional[User] = None,
                             ref_code: Optional[str] = None) -> Booking:
        missing = [name for name in ("customer_name", "customer_phone")
                   if not getattr(data, name).strip()]
        if missing:
            raise ValidationFailedError(f"Missing required fields: {', '.join(missing)}")

        package = await crud_package.get_package(db, data.package_id)
        package_id = package.id
        if package.status != PackageStatus.PUBLISHED:
            raise ValidationFailedError("Package is not open for booking")

        breakdown = None
        if data.passenger_details is not None:
            breakdown = PassengerBreakdown(**data.passenger_details.model_dump())
            if breakdown.total != data.num_passengers:
                raise ValidationFailedError("Passenger details do not add up to num_passengers")
        seated = breakdown.seated if breakdown else data.num_passengers
        seats = self._validate_seats(package, data.selected_seats, seated)
        total_amount = calculate_total_price(package, data.num_passengers, breakdown)

        owner = uuid4().hex
        if seats:
            acquired = await seat_lock_manager.acquire(
                redis, package_id, seats, owner, settings.SEAT_LOCK_TTL_SECONDS)
            if not acquired:
                locked = await seat_lock_manager.locked_seats(redis, package_id)
                raise SeatUnavailableError(set(seats) & set(locked))

        try:
            locked_package = (await db.execute(
                select(Package)
                .where(Package.id == package_id)
                .with_for_update()
                .execution_options(populate_existing=True))).scalar_one()

            if seats:
                occupied, _, _ = await crud_package.get_occupied_seats(
                    db, locked_package.id, locked_package.total_seats)
                taken = set(seats) & set(occupied)
                if taken:
                    logger.warning("Booking rejected, seats %s of package %s already taken",
                                   sorted(taken), package_id)
                    raise SeatUnavailableError(taken)

            update_result = await db.execute(
                update(Package)
                .where(Package.id == locked_package.id)
                .where(Package.available_seats >= seated)
                .values(available_seats=Package.available_seats - seated,
                        bookings_count=Package.bookings_count + 1))
            if update_result.rowcount != 1:
                raise InsufficientSeatsError(locked_package.available_seats)

            booking = Booking(
                package_id=locked_package.id,
                user_id=user.id if user else None,
                customer_name=data.customer_name.strip(),
                customer_email=str(data.customer_email),
                customer_phone=data.customer_phone.strip(),
                customer_cpf=data.customer_cpf,
                customer_notes=data.customer_notes,
                num_passengers=data.num_passengers,
                passenger_details=data.passenger_details.model_dump() if data.passenger_details else None,
                selected_seats=seats or None,
                total_amount=total_amount,
                status=BookingStatus.PENDING,
                payment_status=PaymentStatus.PENDING,
            )
            db.add(booking)
            await db.flush()

            affiliate = await self._find_active_affiliate(db, data.affiliate_code or ref_code)
            if affiliate is not None:
                booking.affiliate_code = affiliate.code
                db.add(AffiliateReferral(
                    affiliate_id=affiliate.id,
                    booking_id=booking.id,
                    package_title=locked_package.title,
                    customer_name=booking.customer_name,
                    sale_amount=total_amount,
                    commission_amount=calculate_commission(total_amount, affiliate.commission_rate),
                ))
                logger.info("Booking %s referred by affiliate %s", booking.id, affiliate.code)

            await db.commit()
            await db.refresh(booking)
        except Exception:
            await db.rollback()
            raise
        finally:
            if seats:
                await seat_lock_manager.release(redis, package_id, seats, owner)
            await redis.delete(seat_layout_cache_key(package_id))

        logger.info("Created booking %s for package %s, %s passengers, seats %s, total %s",
                    booking.id, package_id, data.num_passengers, seats, format_brl(total_amount))
        return booking

    async def list_bookings(self,
                            db: AsyncSession,
                            package_id: Optional[int] = None,
                            status: Optional[BookingStatus] = None) -> dict:
        stmt = select(Booking)
        if package_id is not None:
            stmt = stmt.where(Booking.package_id == package_id)
        if status is not None:
            stmt = stmt.where(Booking.status == status)
        result = await db.execute(stmt.order_by(Booking.created_at.desc(), Booking.id.desc()))
        bookings = result.scalars().all()

        stats_stmt = select(Booking.status, func.count(Booking.id), func.coalesce(func.sum(Booking.total_amount), 0))
        if package_id is not None:
            stats_stmt = stats_stmt.where(Booking.package_id == package_id)
        stats_rows = (await db.execute(stats_stmt.group_by(Booking.status))).all()
        counts = {row_status: count for row_status, count, _ in stats_rows}
        revenue = sum(amount for row_status, _, amount in stats_rows if row_status == BookingStatus.PAID)
        stats = {
            "total": sum(counts.values()),
            "pending": counts.get(BookingStatus.PENDING, 0),
            "confirmed": counts.get(BookingStatus.CONFIRMED, 0),
            "paid": counts.get(BookingStatus.PAID, 0),
            "canceled": counts.get(BookingStatus.CANCELED, 0),
            "revenue": int(revenue),
        }
        return {"data": bookings, "stats": stats}

    async def get_booking(self, db: AsyncSession, booking_id: int, user: User) -> Booking:
        booking = await db.get(Booking, booking_id)
        if booking is None:
            raise NotFoundError("Booking")
        if not user.is_admin and booking.user_id != user.id:
            raise PermissionDeniedError()
        return booking

    async def update_booking(self, db: AsyncSession, redis: Redis, booking_id: int, data: BookingUpdate) -> Booking:
        try:
            result = await db.execute(
                select(Booking)
                .where(Booking.id == booking_id)
                .with_for_update()  # pesimistic locking
                .execution_options(populate_existing=True))
            booking = result.scalar_one_or_none()
            if booking is None:
                raise NotFoundError("Booking")

            freed_seats = False
            if data.status is not None and data.status != booking.status:
                if data.status not in ALLOWED_TRANSITIONS[booking.status]:
                    raise InvalidStatusTransitionError(booking.status.value, data.status.value)

                if data.status == BookingStatus.CANCELED:
                    seated = seated_passengers(booking.num_passengers, booking.passenger_details)
                    await db.execute(
                        update(Package)
                        .where(Package.id == booking.package_id)
                        .values(available_seats=Package.available_seats + seated))
                    booking.canceled_at = utcnow()
                    freed_seats = True
                elif data.status == BookingStatus.PAID:
                    booking.payment_status = PaymentStatus.PAID
                    booking.paid_at = booking.paid_at or utcnow()

                logger.info("Booking %s: %s -> %s", booking.id, booking.status.value, data.status.value)
                booking.status = data.status

            if data.payment_status is not None:
                booking.payment_status = data.payment_status
                if data.payment_status == PaymentStatus.PAID and booking.paid_at is None:
                    booking.paid_at = utcnow()

            if data.notes is not None:
                booking.notes = data.notes

            await db.commit()
            await db.refresh(booking)
        except Exception:
            await db.rollback()
            raise

        if freed_seats:
            await redis.delete(seat_layout_cache_key(booking.package_id))
        return booking


crud_booking = CRDBooking()
