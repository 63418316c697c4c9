"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 6 sample users with wallet balances (one with an empty wallet)
  - a default credit card for half of them
  - 12 sample vehicles ECO-0001 .. ECO-0012 around central Casablanca
    (mix of bikes and scooters, two with low battery, one in maintenance)
"""

import asyncio
from decimal import Decimal

from sqlalchemy import func, select

from wheelshare.domain.enums import VehicleType
from wheelshare.domain.value_objects import BatteryLevel, Location
from wheelshare.domain.vehicle import Vehicle
from wheelshare.domain.wallet import PaymentMethod, User, WalletTransaction
from wheelshare.infrastructure.database import engine
from wheelshare.infrastructure.unit_of_work import UnitOfWorkContext


USERS = [
    {"name": "Yasmine El Idrissi", "email": "yasmine@example.com", "phone": "+212600000001", "wallet": "120.00", "card": ("4242", "Visa")},
    {"name": "Omar Benali", "email": "omar@example.com", "phone": "+212600000002", "wallet": "50.00", "card": None},
    {"name": "Salma Tazi", "email": "salma@example.com", "phone": "+212600000003", "wallet": "10.00", "card": ("5555", "Mastercard")},
    {"name": "Karim Alaoui", "email": "karim@example.com", "phone": "+212600000004", "wallet": "0", "card": ("3782", "Amex")},
    {"name": "Nadia Berrada", "email": "nadia@example.com", "phone": "+212600000005", "wallet": "75.50", "card": None},
    {"name": "Hamza Chraibi", "email": "hamza@example.com", "phone": "+212600000006", "wallet": "200.00", "card": None},
]

VEHICLES = [
    # Bikes near the centre
    {"type": VehicleType.BIKE, "battery": 95, "lat": 33.5735, "lng": -7.5890},
    {"type": VehicleType.BIKE, "battery": 80, "lat": 33.5722, "lng": -7.5911},
    {"type": VehicleType.BIKE, "battery": 64, "lat": 33.5748, "lng": -7.5875},
    {"type": VehicleType.BIKE, "battery": 15, "lat": 33.5710, "lng": -7.5925},  # low
    {"type": VehicleType.BIKE, "battery": 100, "lat": 33.5760, "lng": -7.5860},
    # Scooters
    {"type": VehicleType.SCOOTER, "battery": 88, "lat": 33.5740, "lng": -7.5902},
    {"type": VehicleType.SCOOTER, "battery": 72, "lat": 33.5718, "lng": -7.5883},
    {"type": VehicleType.SCOOTER, "battery": 45, "lat": 33.5729, "lng": -7.5937},
    {"type": VehicleType.SCOOTER, "battery": 9, "lat": 33.5705, "lng": -7.5850},  # low
    {"type": VehicleType.SCOOTER, "battery": 91, "lat": 33.5771, "lng": -7.5918},
    {"type": VehicleType.SCOOTER, "battery": 56, "lat": 33.5699, "lng": -7.5894},
    {"type": VehicleType.SCOOTER, "battery": 67, "lat": 33.5752, "lng": -7.5941, "maintenance": True},
]


async def seed():
    async with UnitOfWorkContext() as uow:
        # Check if already seeded
        result = await uow.session.execute(select(func.count()).select_from(User))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Users, wallets and cards ──────────────────────────────────
        cards = 0
        for u in USERS:
            user = User.register(u["name"], u["email"], u["phone"])
            uow.users.add(user)
            await uow.session.flush()

            opening = Decimal(u["wallet"])
            if opening > 0:
                user.add_to_wallet(opening)
                uow.wallet_transactions.add(
                    WalletTransaction.top_up(
                        user.id, opening, "Card", Decimal("0"), user.wallet_balance,
                        payment_details="Opening balance",
                    )
                )

            if u["card"]:
                last4, card_type = u["card"]
                uow.payment_methods.add(
                    PaymentMethod.create(
                        user.id, last4, card_type, 12, 2030, is_default=True
                    )
                )
                cards += 1
        print(f"  Created {len(USERS)} users ({cards} with a default card)")

        # ── Vehicles ──────────────────────────────────────────────────
        for i, v in enumerate(VEHICLES, start=1):
            vehicle = Vehicle.create(
                f"ECO-{i:04d}",
                v["type"],
                BatteryLevel.create(v["battery"]),
                Location.create(v["lat"], v["lng"]),
            )
            # Low battery vehicles start out UNAVAILABLE
            vehicle.update_battery_level(vehicle.battery)
            if v.get("maintenance"):
                vehicle.mark_for_maintenance()
            uow.vehicles.add(vehicle)
        print(f"  Created {len(VEHICLES)} vehicles")

        await uow.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
