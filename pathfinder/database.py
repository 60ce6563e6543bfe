# pathfinder/database.py

from sqlalchemy import (
    create_engine,
    MetaData,
    Table,
    Column,
    String,
    func,
    TIMESTAMP,
    Integer,
    Boolean,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.pool import StaticPool
from neo4j import GraphDatabase, Driver

from . import config


def make_engine(url: str) -> Engine:
    """Creates the SQL engine. In-memory SQLite shares one connection across threads."""
    if url.startswith("sqlite"):
        return create_engine(
            url, connect_args={"check_same_thread": False}, poolclass=StaticPool
        )
    return create_engine(url)


engine = make_engine(config.DATABASE_URL) if config.DATABASE_URL else None
metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, index=True),
    Column("email", String, unique=True, index=True),
    Column("hashed_password", String, nullable=False),
    Column("is_active", Boolean, default=True),
    Column("created_at", TIMESTAMP, server_default=func.now()),
)


def get_db() -> Connection:
    conn = engine.connect()
    try:
        yield conn
    finally:
        conn.close()


# neo4J


class GraphDatabaseManager:
    def __init__(self):
        self.driver: Driver = None

    def connect(self):
        """Establishes the connection to the Neo4j database."""
        self.driver = GraphDatabase.driver(
            config.NEO4J_URI, auth=(config.NEO4J_USERNAME, config.NEO4J_PASSWORD)
        )

    def close(self):
        if self.driver is not None:
            self.driver.close()
            self.driver = None


graph_db_manager = GraphDatabaseManager()


def get_graph_db_driver() -> Driver:
    if graph_db_manager.driver is None:
        graph_db_manager.connect()
    return graph_db_manager.driver
