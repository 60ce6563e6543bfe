# pathfinder/config.py

import os
from pathlib import Path

from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL")

NEO4J_URI = os.getenv("NEO4J_URI")
NEO4J_USERNAME = os.getenv("NEO4J_USERNAME")
NEO4J_PASSWORD = os.getenv("NEO4J_PASSWORD")

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

SECRET_KEY = os.getenv("SECRET_KEY")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 30))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

if not NEO4J_URI:
    raise ValueError("Missing NEO4J_URI environment variable. Cannot connect to Neo4j.")
if not NEO4J_USERNAME:
    raise ValueError(
        "Missing NEO4J_USERNAME environment variable. Cannot connect to Neo4j."
    )
if not NEO4J_PASSWORD:
    raise ValueError(
        "Missing NEO4J_PASSWORD environment variable. Cannot connect to Neo4j."
    )
