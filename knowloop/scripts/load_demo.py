"""
Demo Data Loader

Seeds an admin, tutors, students, sessions in every lifecycle state,
bookings (free, unpaid and paid) and materials for local development.
Usage: python -m knowloop.scripts.load_demo [--reset]
"""
import asyncio
import argparse
from datetime import timedelta

from faker import Faker
from sqlalchemy import text

from knowloop.config import get_settings
from knowloop.database import Database
from knowloop.models import BookedSession, Material, SessionReview, StudySession, User
from knowloop.models._common import utcnow
from knowloop.services.booking_gate import PaymentStatus
from knowloop.services.review_aggregator import average_rating
from knowloop.services.session_lifecycle import FREE_FEE, SessionStatus

fake = Faker()

TABLES = ["session_reviews", "booked_sessions", "materials", "transactions", "notes", "study_sessions", "users"]


async def clear_data(database: Database):
    """Clear all existing data"""
    async with database.session() as session:
        for table in TABLES:
            await session.execute(text(f"DELETE FROM {table}"))
    print("✓ Cleared existing data")


def _user(role: str) -> User:
    name = fake.name()
    email = f"{name.lower().replace(' ', '.')}.{role}@example.com"
    return User(email=email, name=name, photo=fake.image_url(), role=role)


async def load_demo(database: Database, students: int = 5):
    print("\nLoading demo marketplace...")
    now = utcnow()

    async with database.session() as session:
        admin = User(email="admin@example.com", name="Demo Admin", role="admin")
        tutors = [_user("tutor") for _ in range(2)]
        learners = [_user("student") for _ in range(students)]
        session.add_all([admin, *tutors, *learners])
        print(f"  Created 1 admin, {len(tutors)} tutors, {len(learners)} students")

        plans = [
            (SessionStatus.APPROVED, FREE_FEE),
            (SessionStatus.APPROVED, "25"),
            (SessionStatus.PENDING, "10"),
            (SessionStatus.REJECTED, "40"),
        ]
        study_sessions = []
        for i, (state, fee) in enumerate(plans):
            tutor = tutors[i % len(tutors)]
            study_session = StudySession(
                title=fake.catch_phrase(),
                description=fake.paragraph(),
                tutor_name=tutor.name,
                tutor_email=tutor.email,
                registration_start_date=now + timedelta(days=i),
                registration_end_date=now + timedelta(days=i + 7),
                class_start_date=now + timedelta(days=i + 10),
                class_end_date=now + timedelta(days=i + 40),
                duration="4 weeks",
                fee=fee,
                status=state.value,
                rejection_reason="Incomplete outline" if state is SessionStatus.REJECTED else None,
                average_rating=0,
                reviews=[],
            )
            study_sessions.append(study_session)
        session.add_all(study_sessions)
        await session.flush()
        print(f"  Created {len(study_sessions)} sessions (approved free/paid, pending, rejected)")

        free_session, paid_session = study_sessions[0], study_sessions[1]
        for i, learner in enumerate(learners):
            session.add(BookedSession(
                session_id=free_session.id,
                student_email=learner.email,
                student_name=learner.name,
                tutor_email=free_session.tutor_email,
            ))
            session.add(BookedSession(
                session_id=paid_session.id,
                student_email=learner.email,
                student_name=learner.name,
                tutor_email=paid_session.tutor_email,
                payment_status=(PaymentStatus.PAID if i % 2 == 0 else PaymentStatus.UNPAID).value,
            ))

        for study_session in (free_session, paid_session):
            for _ in range(2):
                session.add(Material(
                    session_id=study_session.id,
                    tutor_email=study_session.tutor_email,
                    title=fake.sentence(nb_words=4),
                    link=fake.url(),
                ))

        ratings = [5, 4, 4]
        for position, rating in enumerate(ratings):
            free_session.reviews.append(SessionReview(
                position=position,
                student_name=learners[position % len(learners)].name,
                review_text=fake.sentence(),
                rating=rating,
            ))
        free_session.average_rating = average_rating(ratings)
        print(f"  Created bookings for {len(learners)} students and 4 materials")

    print("  ✓ Demo marketplace loaded")


async def run(reset: bool, students: int):
    database = Database(get_settings().database_url)
    await database.open()
    try:
        await database.create_all()
        if reset:
            await clear_data(database)
        await load_demo(database, students=students)
    finally:
        await database.close()


def main():
    """CLI entry point"""
    parser = argparse.ArgumentParser(description="Load demo marketplace data")
    parser.add_argument("--reset", action="store_true", help="Delete existing rows first")
    parser.add_argument("--students", type=int, default=5, help="Number of demo students")
    args = parser.parse_args()

    asyncio.run(run(args.reset, args.students))
    print("\n✅ Demo data loaded successfully!")


if __name__ == "__main__":
    main()
