# pathfinder/crud.py

from sqlalchemy import select, insert
from sqlalchemy.engine import Connection
from . import database, schemas
from .security import get_password_hash


def get_user_by_email(conn: Connection, email: str):
    """Fetches a single user by their email address."""
    query = select(database.users).where(database.users.c.email == email)
    return conn.execute(query).first()


def create_user(conn: Connection, user: schemas.UserCreate):
    """Creates a new user; only the password hash is stored."""
    user_data = user.model_dump(exclude={"password"})
    user_data["hashed_password"] = get_password_hash(user.password)
    user_data["is_active"] = True

    conn.execute(insert(database.users).values(user_data))
    conn.commit()
    return get_user_by_email(conn, user.email)
