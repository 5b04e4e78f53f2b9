"""
Pharma Field Sales - Create the first Admin account.
Run: cd backend && python3 scripts/seed_admin.py admin@example.com "Admin Name" 'password'
"""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config import client
from models.auth import Role, MIN_PASSWORD_LENGTH
from services import users as user_service
from services.errors import ValidationError


async def main(email: str, name: str, password: str) -> int:
    if len(password) < MIN_PASSWORD_LENGTH:
        print(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        return 1

    try:
        user = await user_service.create_user(
            name=name, email=email, password=password, role=Role.ADMIN.value
        )
    except ValidationError as e:
        print(f"Not created: {e.message}")
        return 1
    finally:
        client.close()

    print(f"Admin created: {user['email']} ({user['id']})")
    return 0


if __name__ == "__main__":
    if len(sys.argv) != 4:
        print(__doc__)
        sys.exit(2)
    sys.exit(asyncio.run(main(sys.argv[1], sys.argv[2], sys.argv[3])))
