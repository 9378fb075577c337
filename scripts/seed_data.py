"""Seed the database with an admin account and a sample curriculum.

Usage: python scripts/seed_data.py [admin-email]
"""

import asyncio
import sys
from pathlib import Path

# Ensure project root is on sys.path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import select

from app.config import settings
from app.database import async_session, init_db
from app.models import Quiz, SchoolClass, Student, Subject, Unit

SEED_CLASS = {"name": "Grade 8", "description": "Sample class"}

SEED_SUBJECTS = [
    {
        "name": "Science",
        "description": "Physics and chemistry basics",
        "units": [
            {
                "title": "Motion and Forces",
                "videos": [{"url": "/uploads/sample-motion.mp4", "name": "Newton's laws"}],
                "pdfs": [{"url": "/uploads/sample-motion.pdf", "name": "Worksheet"}],
                "quiz": {
                    "name": "Forces check",
                    "questions": [
                        {
                            "question_text": "What is the SI unit of force?",
                            "options": ["Joule", "Newton", "Watt"],
                            "correct_answer": "Newton",
                        },
                    ],
                },
            },
        ],
    },
    {
        "name": "Mathematics",
        "description": "Algebra",
        "units": [
            {
                "title": "Linear Equations",
                "videos": [{"url": "/uploads/sample-linear.mp4", "name": "Solving for x"}],
                "pdfs": [],
                "quiz": None,
            },
        ],
    },
]


async def seed(admin_email: str) -> None:
    settings.DATA_DIR.mkdir(parents=True, exist_ok=True)

    # Create tables
    await init_db()
    print("Database tables created.")

    async with async_session() as session:
        result = await session.execute(select(Student).where(Student.email == admin_email))
        if result.scalar_one_or_none() is None:
            session.add(Student(email=admin_email, name="Administrator", role="admin"))
            print(f"  Inserted admin: {admin_email}")

        result = await session.execute(
            select(SchoolClass).where(SchoolClass.name == SEED_CLASS["name"])
        )
        if result.scalar_one_or_none() is not None:
            # Idempotent: the sample curriculum is only created once
            await session.commit()
            print("Sample curriculum already present.")
            return

        school_class = SchoolClass(**SEED_CLASS)
        session.add(school_class)
        await session.flush()

        for subject_data in SEED_SUBJECTS:
            subject = Subject(
                class_id=school_class.id,
                name=subject_data["name"],
                description=subject_data["description"],
            )
            session.add(subject)
            await session.flush()
            for unit_data in subject_data["units"]:
                unit = Unit(
                    subject_id=subject.id,
                    title=unit_data["title"],
                    videos=unit_data["videos"],
                    pdfs=unit_data["pdfs"],
                )
                session.add(unit)
                await session.flush()
                if unit_data["quiz"]:
                    session.add(Quiz(unit_id=unit.id, enabled=True, **unit_data["quiz"]))
            print(f"  Inserted subject: {subject.name}")

        await session.commit()

    print("Seed data complete.")


if __name__ == "__main__":
    asyncio.run(seed(sys.argv[1] if len(sys.argv) > 1 else "admin@example.com"))
