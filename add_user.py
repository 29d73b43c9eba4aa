from sqlmodel import select

from taskboard.database import SessionLocal, create_tables
from taskboard.models import User
from taskboard.routers.auth import get_password_hash

EMAIL = "test@example.com"
PASSWORD = "password"

# Create tables if not exist
create_tables()

with SessionLocal() as db:
    existing_user = db.exec(select(User).where(User.email == EMAIL)).first()
    if existing_user:
        print("User already exists")
    else:
        db.add(User(name="Test User", email=EMAIL, hashed_password=get_password_hash(PASSWORD)))
        db.commit()
        print(f"Test user created: {EMAIL} / {PASSWORD}")
