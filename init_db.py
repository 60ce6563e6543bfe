import logging
import time

from pathfinder.database import engine, metadata, get_graph_db_driver, graph_db_manager
from pathfinder import graph_crud

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("init_db")

# Give the databases a moment to start up
time.sleep(5)

logger.info("Creating database tables...")
metadata.create_all(bind=engine)
logger.info("Tables created successfully.")

logger.info("Creating Neo4j constraints...")
with get_graph_db_driver().session() as session:
    session.execute_write(graph_crud.create_constraints)
graph_db_manager.close()
logger.info("Constraints created successfully.")
