"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 8 sample passengers
  - 10 sample drivers (spread around Connaught Place, New Delhi)
  - 6 sample rides (mix of requested, driver_assigned, completed, cancelled)
"""

import asyncio
from datetime import timedelta

from sqlalchemy import func, select

from ridehail.config import settings
from ridehail.domain.enums import DriverStatus, RideStatus
from ridehail.infrastructure.database import build_engine, build_session_factory
from ridehail.infrastructure.models import DriverModel, RideModel, UserModel, utcnow


USERS = [
    {"name": "Aarav Sharma", "email": "aarav@example.com", "payment": "card"},
    {"name": "Priya Patel", "email": "priya@example.com", "payment": "upi"},
    {"name": "Rohan Mehta", "email": "rohan@example.com", "payment": "card"},
    {"name": "Sneha Gupta", "email": "sneha@example.com", "payment": "wallet"},
    {"name": "Vikram Singh", "email": "vikram@example.com", "payment": None},
    {"name": "Ananya Reddy", "email": "ananya@example.com", "payment": "upi"},
    {"name": "Karan Joshi", "email": "karan@example.com", "payment": "card"},
    {"name": "Meera Nair", "email": "meera@example.com", "payment": "cash"},
]

DRIVERS = [
    # Online around Connaught Place
    {"name": "Ramesh Yadav", "rating": 4.8, "lat": 28.6320, "lng": 77.2170, "online": True},
    {"name": "Suresh Kumar", "rating": 4.2, "lat": 28.6290, "lng": 77.2140, "online": True},
    {"name": "Mahesh Verma", "rating": 4.9, "lat": 28.6350, "lng": 77.2200, "online": True},
    {"name": "Dinesh Chauhan", "rating": 4.5, "lat": 28.6270, "lng": 77.2190, "online": True},
    {"name": "Rajesh Gill", "rating": 4.7, "lat": 28.6400, "lng": 77.2100, "online": True},
    {"name": "Harish Rawat", "rating": 3.9, "lat": 28.6200, "lng": 77.2250, "online": True},
    # Offline / not yet approved
    {"name": "Naresh Bhatt", "rating": 4.6, "lat": 28.6330, "lng": 77.2180, "online": False},
    {"name": "Mukesh Tiwari", "rating": 4.4, "lat": None, "lng": None, "online": False},
    {"name": "Ganesh Pillai", "rating": 0.0, "lat": 28.6250, "lng": 77.2080, "online": False,
     "status": DriverStatus.PENDING},
    {"name": "Lokesh Saini", "rating": 0.0, "lat": 28.6410, "lng": 77.2300, "online": False,
     "status": DriverStatus.REJECTED},
]


async def seed(session_factory):
    async with session_factory() as session:
        # Check if already seeded
        result = await session.execute(select(func.count()).select_from(UserModel))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Passengers ────────────────────────────────────────────────
        user_models = []
        for u in USERS:
            m = UserModel(
                name=u["name"],
                email=u["email"],
                default_payment_method=u["payment"],
            )
            session.add(m)
            user_models.append(m)
        await session.flush()
        print(f"  Created {len(user_models)} passengers")

        # ── Drivers ───────────────────────────────────────────────────
        driver_models = []
        for d in DRIVERS:
            m = DriverModel(
                name=d["name"],
                phone=f"+91-98100-{len(driver_models):05d}",
                status=d.get("status", DriverStatus.ACTIVE),
                is_available=d["online"],
                current_lat=d["lat"],
                current_lng=d["lng"],
                rating=d["rating"],
            )
            session.add(m)
            driver_models.append(m)
        await session.flush()
        print(f"  Created {len(driver_models)} drivers")

        # ── Rides ─────────────────────────────────────────────────────
        now = utcnow()
        busy = driver_models[6]
        rides_data = [
            # Waiting for the matcher
            {
                "passenger": user_models[0],
                "pickup": (28.6315, 77.2167),
                "dropoff": "India Gate",
                "status": RideStatus.REQUESTED,
            },
            {
                "passenger": user_models[1],
                "pickup": (28.6280, 77.2200),
                "dropoff": "Khan Market",
                "status": RideStatus.REQUESTED,
            },
            # Assigned to an offline-but-busy driver
            {
                "passenger": user_models[2],
                "pickup": (28.6340, 77.2190),
                "dropoff": "Karol Bagh",
                "status": RideStatus.DRIVER_ASSIGNED,
                "driver": busy,
            },
            # Finished and settled
            {
                "passenger": user_models[3],
                "pickup": (28.6310, 77.2160),
                "dropoff": "Hauz Khas",
                "status": RideStatus.COMPLETED,
                "driver": driver_models[0],
                "fare": 185.0,
                "distance_km": 12.4,
                "start": now - timedelta(days=2, minutes=35),
                "end": now - timedelta(days=2),
            },
            {
                "passenger": user_models[5],
                "pickup": (28.6300, 77.2150),
                "dropoff": "Lajpat Nagar",
                "status": RideStatus.COMPLETED,
                "driver": driver_models[2],
                "fare": 142.0,
                "distance_km": 8.9,
                "start": now - timedelta(days=1, minutes=24),
                "end": now - timedelta(days=1),
            },
            {
                "passenger": user_models[4],
                "pickup": (28.6325, 77.2175),
                "dropoff": "Chandni Chowk",
                "status": RideStatus.CANCELLED,
            },
        ]

        for r in rides_data:
            driver = r.get("driver")
            passenger = r["passenger"]
            ride = RideModel(
                passenger_id=passenger.id,
                passenger_name=passenger.name,
                passenger_lat=r["pickup"][0],
                passenger_lng=r["pickup"][1],
                dropoff_address=r["dropoff"],
                status=r["status"],
                driver_id=driver.id if driver else None,
                driver_name=driver.name if driver else None,
                driver_phone=driver.phone if driver else None,
                driver_lat=driver.current_lat if driver else None,
                driver_lng=driver.current_lng if driver else None,
                distance_km=r.get("distance_km"),
                start_time=r.get("start"),
                end_time=r.get("end"),
                fare=r.get("fare"),
                payment_method=passenger.default_payment_method,
                payment_status="completed" if r.get("fare") else None,
                base_fare=settings.base_fare,
                per_minute_rate=settings.per_minute_rate,
                per_km_rate=settings.per_km_rate,
            )
            session.add(ride)
        await session.flush()

        # The assigned ride holds its driver
        assigned = (
            await session.execute(
                select(RideModel).where(RideModel.status == RideStatus.DRIVER_ASSIGNED)
            )
        ).scalar_one()
        busy.current_ride_id = assigned.id
        print(f"  Created {len(rides_data)} rides")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    engine = build_engine(settings.database_url)
    await seed(build_session_factory(engine))
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
