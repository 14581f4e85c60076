from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from travel_agency.models import as_utc, utcnow
from travel_agency.models.booking import Booking, BookingStatus
from travel_agency.models.user import User, UserRole


class CRUDCustomer:
    async def list_customers(self, db: AsyncSession, search: Optional[str] = None) -> dict:
        """
        Registered users merged with guest bookings, keyed by lower-cased email.
        A guest that later signs up with the same email becomes one customer.
        """
        users = (await db.execute(select(User).where(User.role == UserRole.USER))).scalars().all()
        bookings = (await db.execute(
            select(Booking).order_by(Booking.created_at.asc(), Booking.id.asc()))).scalars().all()

        customers = {}
        for user in users:
            customers[user.email.lower()] = {
                "name": user.full_name or user.email,
                "email": user.email,
                "phone": user.phone,
                "registered": True,
                "user_id": user.id,
                "bookings_count": 0,
                "total_spent": 0,
                "last_booking_at": None,
                "created_at": as_utc(user.created_at),
            }

        for booking in bookings:
            key = booking.customer_email.lower()
            customer = customers.get(key)
            if customer is None:
                customer = customers[key] = {
                    "name": booking.customer_name,
                    "email": booking.customer_email,
                    "phone": booking.customer_phone,
                    "registered": False,
                    "user_id": None,
                    "bookings_count": 0,
                    "total_spent": 0,
                    "last_booking_at": None,
                    "created_at": as_utc(booking.created_at),
                }
            customer["phone"] = customer["phone"] or booking.customer_phone
            customer["bookings_count"] += 1
            if booking.status != BookingStatus.CANCELED:
                customer["total_spent"] += booking.total_amount
            customer["last_booking_at"] = as_utc(booking.created_at)

        data = list(customers.values())
        if search:
            term = search.strip().lower()
            data = [c for c in data
                    if term in c["name"].lower() or term in c["email"].lower() or term in (c["phone"] or "")]
        data.sort(key=lambda c: c["last_booking_at"] or c["created_at"] or utcnow(), reverse=True)

        month_start = utcnow().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        all_customers = list(customers.values())
        stats = {
            "total": len(all_customers),
            "new_this_month": len([c for c in all_customers if c["created_at"] and c["created_at"] >= month_start]),
            "with_bookings": len([c for c in all_customers if c["bookings_count"] > 0]),
        }
        return {"data": data, "stats": stats}


crud_customer = CRUDCustomer()
