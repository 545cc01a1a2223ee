#!/usr/bin/env python3
"""
Create the admin account, or reset its credentials if one already exists.

Registration needs an invitation code and only admins can issue codes, so
the first admin has to be bootstrapped out of band:

    DATABASE_URL=mongodb://localhost:27017 python create_admin.py \
        --email admin@example.com --username admin --name "System Administrator"
"""
import argparse
import getpass
import os

from database import USERS, get_db, utcnow
from schemas import Role, User
from security import get_password_hash
from validation import dump


def create_admin(db, email, password, name="System Administrator", username=None):
    """Return "created" or "updated" depending on whether an admin existed."""
    users = db[USERS]
    existing = users.find_one({"role": Role.ADMIN.value})
    admin = User(email=email, username=username, name=name, password=get_password_hash(password), role=Role.ADMIN)
    doc = dump(admin, exclude_none=True)
    doc["updatedAt"] = utcnow()

    if existing is not None:
        users.update_one({"_id": existing["_id"]}, {"$set": doc})
        return "updated"

    doc["createdAt"] = doc["updatedAt"]
    users.insert_one(doc)
    return "created"


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--email", required=True)
    parser.add_argument("--username")
    parser.add_argument("--name", default="System Administrator")
    args = parser.parse_args()

    password = os.getenv("ADMIN_PASSWORD") or getpass.getpass("Admin password: ")
    if len(password) < 6:
        parser.error("password must be at least 6 characters")

    result = create_admin(get_db(), args.email, password, name=args.name, username=args.username)
    print(f"✅ Admin user {result}: {args.email}")


if __name__ == "__main__":
    main()
