# app/db/seed.py
import argparse
import asyncio
import logging
import random
from datetime import datetime, timezone, timedelta

from faker import Faker
from tqdm import tqdm

from app.core.config import settings
from app.core.security import hash_password
from app.db.session import BackendClient
from app.repositories.user_repo import UserRepository
from app.services.auth_services import AuthService

logger = logging.getLogger(__name__)

fake = Faker()

NUM_USERS = 60
COMPANY_SHARE = 0.25
NUM_VEHICLES = 80
NUM_RENTALS = 400
BATCH_SIZE = 200
DEFAULT_PASSWORD = "rental123"

VERIFICATION_STATUSES = ["PENDING", "APPROVED", "REJECTED"]
RENTAL_STATUSES = ["pending", "approved", "rejected", "cancelled"]
PAYMENT_METHODS = ["card", "cash", "transfer"]
DEAL_STAGES = ["new", "negotiation", "won", "lost"]


def random_datetime_within_last_n_months(months: int = 6) -> datetime:
    now = datetime.now(tz=timezone.utc)
    start = now - timedelta(days=30 * months)
    delta_seconds = int((now - start).total_seconds())
    return start + timedelta(seconds=random.randint(0, max(0, delta_seconds)))


async def insert_user(conn, is_company: bool, hashed_password: str):
    sql = """
    INSERT INTO users (email, name, role, "isVerified", "isCompany", "isOwner", "isRenter",
                       avatar_url, phone, hashed_password, created_at)
    VALUES ($1, $2, 'user', $3, $4, $5, $6, $7, $8, $9, $10)
    RETURNING id;
    """
    name = fake.company() if is_company else fake.name()
    is_owner = is_company or random.random() < 0.3
    return await conn.fetchval(
        sql,
        fake.unique.email(),
        name,
        random.random() < 0.6,
        is_company,
        is_owner,
        not is_company and random.random() < 0.8,
        fake.image_url(),
        fake.phone_number()[:30],
        hashed_password,
        random_datetime_within_last_n_months(12),
    )


async def seed(backend: BackendClient):
    async with backend.acquire() as conn:
        logger.info("Creating users...")
        hashed_password = hash_password(DEFAULT_PASSWORD)
        user_ids = []
        for _ in tqdm(range(NUM_USERS), desc="Users"):
            uid = await insert_user(conn, random.random() < COMPANY_SHARE, hashed_password)
            user_ids.append(uid)

        logger.info("Creating verification requests...")
        await conn.executemany(
            """
            INSERT INTO verification (user_id, national_id_image_url, license_image_url, status, created_at)
            VALUES ($1, $2, $3, $4, $5)
            """,
            [
                (uid, fake.image_url(), fake.image_url(), random.choice(VERIFICATION_STATUSES),
                 random_datetime_within_last_n_months(3))
                for uid in random.sample(user_ids, k=len(user_ids) // 2)
            ],
        )

        logger.info("Creating vehicles...")
        owners = await conn.fetch('SELECT id FROM users WHERE "isOwner" = true')
        owner_ids = [row["id"] for row in owners] or user_ids
        vehicle_ids = []
        for _ in range(NUM_VEHICLES):
            vid = await conn.fetchval(
                "INSERT INTO vehicles (owner_id) VALUES ($1) RETURNING id;",
                random.choice(owner_ids),
            )
            vehicle_ids.append(vid)

        logger.info("Creating rental requests and deals...")
        rental_sql = """
        INSERT INTO rental_requests
        (user_id, vehicle_id, status, start_date, end_date, location, address, payment, notes, created_at)
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
        RETURNING id;
        """
        deal_sql = "INSERT INTO deals (id, title, value, stage, company) VALUES ($1, $2, $3, $4, $5)"
        history_sql = "INSERT INTO history (title, message, user_id, created_at) VALUES ($1, $2, $3, $4)"
        deal_batch, history_batch = [], []

        for _ in tqdm(range(NUM_RENTALS), desc="Rentals"):
            renter = random.choice(user_ids)
            created_at = random_datetime_within_last_n_months(6)
            start = created_at.date() + timedelta(days=random.randint(1, 30))
            status = random.choices(RENTAL_STATUSES, weights=[0.3, 0.5, 0.1, 0.1])[0]
            rid = await conn.fetchval(
                rental_sql,
                renter,
                random.choice(vehicle_ids),
                status,
                start,
                start + timedelta(days=random.randint(1, 14)),
                fake.city(),
                fake.street_address(),
                random.choice(PAYMENT_METHODS),
                fake.sentence(nb_words=8) if random.random() < 0.4 else None,
                created_at,
            )
            if status == "approved" and random.random() < 0.7:
                deal_batch.append((rid, fake.catch_phrase(), round(random.uniform(50, 2000), 2),
                                   random.choice(DEAL_STAGES), fake.company()))
            history_batch.append((f"Rental request #{rid}", f"Rental request {status}", renter, created_at))

            if len(history_batch) >= BATCH_SIZE:
                await conn.executemany(deal_sql, deal_batch)
                await conn.executemany(history_sql, history_batch)
                deal_batch.clear()
                history_batch.clear()

        if deal_batch:
            await conn.executemany(deal_sql, deal_batch)
        if history_batch:
            await conn.executemany(history_sql, history_batch)

        logger.info("Seed complete.")


async def create_admin(backend: BackendClient, email: str, password: str):
    async with backend.acquire() as conn:
        user = await AuthService(UserRepository(conn)).create_admin(email, password)
    logger.info("Admin %s created with id %s", user.email, user.id)
    return user


async def main(argv=None):
    parser = argparse.ArgumentParser(description="Populate the rental admin database.")
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("seed", help="insert fake users, verifications, vehicles and rentals")
    admin = sub.add_parser("create-admin", help="create an account with the admin role")
    admin.add_argument("email")
    admin.add_argument("password")
    args = parser.parse_args(argv)

    backend = BackendClient.from_settings(settings)
    await backend.connect()
    try:
        if args.command == "create-admin":
            await create_admin(backend, args.email, args.password)
        else:
            await seed(backend)
    finally:
        await backend.close()


if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL.upper(), format="%(asctime)s - %(levelname)s - %(message)s")
    asyncio.run(main())
