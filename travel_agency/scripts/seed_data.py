import asyncio
import logging
from datetime import date, timedelta

from travel_agency.core.logging_config import configure_logging
from travel_agency.core.security import create_access_token
from travel_agency.db.session import async_session_factory, engine, init_db
from travel_agency.models import Bus, Package, PackageStatus, User, UserRole
from travel_agency.services.text import slugify

logger = logging.getLogger(__name__)


async def seed():
    async with async_session_factory() as session:

        # ------------------------------------------------------------------------------------
        # 1. Admin user, the external id mirrors the auth provider subject
        # ------------------------------------------------------------------------------------
        admin = User(
            external_id="seed-admin",
            email="admin@example.com",
            first_name="Admin",
            last_name="Agência",
            role=UserRole.SUPER_ADMIN,
        )
        session.add(admin)

        # ------------------------------------------------------------------------------------
        # 2. Fleet
        # ------------------------------------------------------------------------------------
        bus_single = Bus(model="Marcopolo Paradiso G7 1200", year=2021, plate="ABC1D23", seats=44)
        bus_double = Bus(model="Marcopolo Paradiso G8 1800 DD", year=2023, plate="XYZ9K87", seats=60, floors=2)
        session.add_all([bus_single, bus_double])
        await session.flush()

        # ------------------------------------------------------------------------------------
        # 3. Published packages, prices in cents
        # ------------------------------------------------------------------------------------
        today = date.today()
        packages = [
            dict(title="Gramado e Canela - Natal Luz", destination="Gramado, RS", price=189900,
                 original_price=219900, price_child_6_10=129900, price_child_11_13=159900,
                 duration_days=4, departure_date=today + timedelta(days=45), departure_time="06:00",
                 return_date=today + timedelta(days=49), return_time="22:00",
                 total_seats=bus_single.seats, bus_id=bus_single.id, is_featured=True,
                 includes=["Transporte", "Hospedagem com café da manhã", "Guia"],
                 not_includes=["Almoço", "Jantar"], attractions=["Lago Negro", "Mini Mundo"]),
            dict(title="Beto Carrero World", destination="Penha, SC", price=69900,
                 duration_days=2, departure_date=today + timedelta(days=20), departure_time="05:30",
                 return_date=today + timedelta(days=21), return_time="23:00",
                 total_seats=bus_double.seats, bus_id=bus_double.id,
                 includes=["Transporte", "Ingresso"]),
            dict(title="Aparecida - Romaria", destination="Aparecida, SP", price=29900,
                 duration_days=1, departure_date=today + timedelta(days=10), departure_time="04:00",
                 total_seats=0, includes=["Transporte"]),
        ]
        for values in packages:
            session.add(Package(**values, slug=slugify(values["title"]),
                                available_seats=values["total_seats"] or 40,
                                status=PackageStatus.PUBLISHED))

        await session.commit()
        logger.info("Seeded admin user, %s buses and %s packages", 2, len(packages))
        logger.info("Admin token: %s", create_access_token(
            {"sub": admin.external_id, "email": admin.email}, expires_minutes=24 * 60))


async def main():
    configure_logging()
    await init_db()
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
