"""
Seed Demo Data

Creates one admin and two students with complete profiles:
- admin@university.edu / admin123         -> Admin
- john.doe@university.edu / student123    -> Student (CS2021001)
- jane.smith@university.edu / student123  -> Student (EE2021002)

Existing emails are skipped, so the script can be run repeatedly.

Run with: python seed_demo_data.py
"""
import asyncio
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from studentdesk.core.database import Database
from studentdesk.models.user import UserRole
from studentdesk.schemas.profile import ProfileCreate
from studentdesk.services.auth_service import AuthService
from studentdesk.services.profile_service import ProfileService


DEMO_USERS = [
    {
        "name": "Admin User",
        "email": "admin@university.edu",
        "password": "admin123",
        "role": UserRole.ADMIN,
    },
    {
        "name": "John Doe",
        "email": "john.doe@university.edu",
        "password": "student123",
        "role": UserRole.STUDENT,
        "profile": {
            "personalInfo": {
                "firstName": "John",
                "lastName": "Doe",
                "dateOfBirth": "2000-05-15",
                "gender": "male",
                "phone": "9876543210",
                "address": {
                    "street": "123 Main Street",
                    "city": "Mumbai",
                    "state": "Maharashtra",
                    "postalCode": "400001",
                    "country": "India",
                },
            },
            "academicDetails": {
                "studentId": "CS2021001",
                "course": "Computer Science",
                "department": "Computer Science & Engineering",
                "year": 3,
                "semester": 5,
                "enrollmentDate": "2021-08-01",
                "gpa": 8.5,
            },
            "feeDetails": {
                "totalFees": 150000,
                "feesPaid": 100000,
                "paymentHistory": [
                    {"amount": 50000, "date": "2021-08-15T00:00:00", "method": "online", "transactionId": "TXN123456"},
                    {"amount": 50000, "date": "2022-08-15T00:00:00", "method": "card", "transactionId": "TXN789012"},
                ],
            },
        },
    },
    {
        "name": "Jane Smith",
        "email": "jane.smith@university.edu",
        "password": "student123",
        "role": UserRole.STUDENT,
        "profile": {
            "personalInfo": {
                "firstName": "Jane",
                "lastName": "Smith",
                "dateOfBirth": "2001-03-20",
                "gender": "female",
                "phone": "9876543211",
                "address": {
                    "street": "456 Park Avenue",
                    "city": "Bangalore",
                    "state": "Karnataka",
                    "postalCode": "560001",
                    "country": "India",
                },
            },
            "academicDetails": {
                "studentId": "EE2021002",
                "course": "Electronics Engineering",
                "department": "Electronics & Communication",
                "year": 2,
                "semester": 4,
                "enrollmentDate": "2021-08-01",
                "gpa": 9.0,
            },
            "feeDetails": {
                "totalFees": 140000,
                "feesPaid": 70000,
                "paymentHistory": [
                    {"amount": 35000, "date": "2021-08-15T00:00:00", "method": "cash", "transactionId": "TXN345678"},
                    {"amount": 35000, "date": "2022-08-15T00:00:00", "method": "online", "transactionId": "TXN901234"},
                ],
            },
        },
    },
]


async def seed_demo_data(database: Database) -> int:
    """Create missing demo users and their profiles, return how many were created"""
    print("=" * 50)
    print("Seeding Demo Data...")
    print("=" * 50)

    await database.create_all()

    created_count = 0
    async with database.session() as db:
        auth = AuthService(db)
        profiles = ProfileService(db)

        for entry in DEMO_USERS:
            if await auth.get_user_by_email(entry["email"]):
                print(f"  Skipped (exists): {entry['email']}")
                continue

            user = await auth.register(
                name=entry["name"],
                email=entry["email"],
                password=entry["password"],
                role=entry["role"],
            )
            created_count += 1
            print(f"  Created: {user.email} ({user.role.value})")

            if "profile" in entry:
                profile = await profiles.create(user, ProfileCreate.model_validate(entry["profile"]))
                print(f"    Profile {profile.student_id}: pending {profile.fees_pending:.2f}")

    print("=" * 50)
    print(f"Done! Created: {created_count}, Skipped: {len(DEMO_USERS) - created_count}")
    print("=" * 50)
    print("\nLogin Credentials:")
    for entry in DEMO_USERS:
        print(f"  {entry['role'].value.capitalize():8} {entry['email']} / {entry['password']}")

    return created_count


async def run() -> None:
    database = Database()
    await database.connect()
    try:
        await seed_demo_data(database)
    finally:
        await database.disconnect()


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
