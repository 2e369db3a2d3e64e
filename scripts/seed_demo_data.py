"""Seed the subject catalog and the demo roster, groups and messages.

Runs only against an empty database: if any user exists nothing is written.
"""
import asyncio
import sys
sys.path.insert(0, ".")

from sqlalchemy import func, select

from studysphere.catalog import ALL_SUBJECTS
from studysphere.database import async_session_factory, engine
from studysphere.demo_data import DEMO_GROUPS, DEMO_MESSAGES, DEMO_USERS
from studysphere.models.message import Message
from studysphere.models.subject import Subject
from studysphere.models.user import User
from studysphere.services.group_service import GroupService
from studysphere.services.profile_service import ProfileService


async def seed():
    async with async_session_factory() as session:
        user_count = await session.scalar(select(func.count()).select_from(User))
        if user_count:
            print(f"  Database already has {user_count} users, skipping.")
            return

        for subject in ALL_SUBJECTS:
            if await session.get(Subject, subject.id) is None:
                session.add(Subject(id=subject.id, name=subject.name))
        await session.commit()
        print(f"  Subject catalog ready ({len(ALL_SUBJECTS)} subjects).")

        profiles = ProfileService()
        for user in DEMO_USERS:
            await profiles.upsert_user(user, session)
            print(f"  Seeded user {user.id}: {user.name}")

        groups = GroupService()
        for group in DEMO_GROUPS:
            await groups.upsert_group(group, session)
            print(f"  Seeded group {group.id}: {group.name}")

        for message in DEMO_MESSAGES:
            session.add(
                Message(
                    id=message.id,
                    sender_id=message.sender_id,
                    receiver_id=message.receiver_id,
                    text=message.text,
                    timestamp=message.timestamp,
                )
            )
        await session.commit()
        print(f"  Seeded {len(DEMO_MESSAGES)} messages.")

    await engine.dispose()
    print("Done seeding demo data.")


if __name__ == "__main__":
    asyncio.run(seed())
