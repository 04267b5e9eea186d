"""
Script to create an admin account for the Campus Navigation API
Run from project root: python scripts/create_admin.py
"""
import asyncio
import sys
import os
from motor.motor_asyncio import AsyncIOMotorClient
from beanie import init_beanie
from passlib.context import CryptContext

# Add parent directory to path to import models
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import DATABASE_NAME, DATABASE_URL
from models import Admin

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


async def _init_db():
    client = AsyncIOMotorClient(DATABASE_URL)
    await init_beanie(database=client[DATABASE_NAME], document_models=[Admin])


async def create_admin(username: str, email: str, password: str, role: str = "admin"):
    """Create an admin account, or re-activate an existing one"""
    await _init_db()

    existing = await Admin.find_one(Admin.username == username)
    if existing:
        print(f"❌ Admin '{username}' already exists!")
        if not existing.is_active:
            response = input(f"Do you want to re-activate '{username}'? (yes/no): ")
            if response.lower() in ['yes', 'y']:
                existing.is_active = True
                await existing.save()
                print(f"✅ Admin '{username}' is active again!")
        return

    admin = Admin(
        username=username,
        email=email,
        hashed_password=pwd_context.hash(password),
        role=role,
    )
    await admin.insert()
    print(f"✅ Admin '{username}' created successfully!")
    print(f"   Email: {email}")
    print(f"   Role: {role}")


async def list_admins():
    await _init_db()

    admins = await Admin.find_all().to_list()
    if not admins:
        print("No admins found in database.")
        return

    print("\n📋 Current Admins:")
    print("-" * 60)
    for admin in admins:
        status = "active" if admin.is_active else "disabled"
        print(f"{admin.role:12} | {admin.username:20} | {admin.email} ({status})")
    print("-" * 60)


def main():
    print("=" * 60)
    print("Campus Navigation - Admin Account Creator")
    print("=" * 60)
    print()

    print("What would you like to do?")
    print("1. Create new admin")
    print("2. List all admins")
    print("3. Exit")

    choice = input("\nEnter choice (1-3): ")

    if choice == "1":
        print("\n📝 Create New Admin")
        print("-" * 60)
        username = input("Enter username: ")
        email = input("Enter email: ")
        password = input("Enter password: ")

        if not username or not email or not password:
            print("❌ All fields are required!")
            return

        asyncio.run(create_admin(username, email, password))

    elif choice == "2":
        asyncio.run(list_admins())

    elif choice == "3":
        print("Goodbye!")
        return

    else:
        print("❌ Invalid choice!")


if __name__ == "__main__":
    main()
