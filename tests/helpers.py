from sqlmodel import Session

from taskboard.models import Task, User
from taskboard.routers.auth import create_access_token, get_password_hash


def make_user(session: Session, email: str = "ada@example.com", name: str = "Ada") -> User:
    user = User(name=name, email=email, hashed_password=get_password_hash("secret1"))
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def make_task(session: Session, owner: User, text: str, **fields) -> Task:
    task = Task(user_id=owner.id, text=text, **fields)
    session.add(task)
    session.commit()
    session.refresh(task)
    return task


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': user.id})}"}
