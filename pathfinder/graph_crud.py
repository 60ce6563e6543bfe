# pathfinder/graph_crud.py
#
# Cypher transaction functions. Each takes the transaction as its first
# argument and is meant to be run through session.execute_read/execute_write.

import json
from typing import List, Optional


def node_properties(node: dict) -> dict:
    """Flattens a node dict into Neo4j-storable properties."""
    props = dict(node)
    props["metadata_json"] = json.dumps(props.pop("metadata", None) or {})
    if "node_type" in props and hasattr(props["node_type"], "value"):
        props["node_type"] = props["node_type"].value
    return props


def node_from_graph(n) -> dict:
    data = dict(n)
    raw = data.pop("metadata_json", None)
    data["metadata"] = json.loads(raw) if raw else {}
    return data


# ---- Graphs ----


def create_graph(tx, graph_id: str, user_id: int):
    query = """
    CREATE (g:Graph {id: $graph_id, user_id: $user_id, version: 1, created_at: datetime()})
    RETURN g
    """
    result = tx.run(query, graph_id=graph_id, user_id=user_id).single()
    return dict(result["g"])


def get_graph(tx, graph_id: str) -> Optional[dict]:
    query = "MATCH (g:Graph {id: $graph_id}) RETURN g"
    record = tx.run(query, graph_id=graph_id).single()
    return dict(record["g"]) if record else None


def get_latest_graph(tx, user_id: int) -> Optional[dict]:
    """Returns the most recently created graph of a user."""
    query = """
    MATCH (g:Graph {user_id: $user_id})
    RETURN g
    ORDER BY g.created_at DESC
    LIMIT 1
    """
    record = tx.run(query, user_id=user_id).single()
    return dict(record["g"]) if record else None


def delete_graph(tx, graph_id: str):
    """
    Deletes a graph with all of its nodes and the goals that target them.
    DETACH DELETE takes the LEADS_TO relationships along with the nodes.
    """
    tx.run(
        """
        MATCH (n:SkillNode {graph_id: $graph_id})
        MATCH (g:Goal) WHERE g.target_node_id = n.id
        DETACH DELETE g
        """,
        graph_id=graph_id,
    )
    tx.run("MATCH (n:SkillNode {graph_id: $graph_id}) DETACH DELETE n", graph_id=graph_id)
    tx.run("MATCH (g:Graph {id: $graph_id}) DETACH DELETE g", graph_id=graph_id)


# ---- Nodes ----


def create_node(tx, props: dict):
    query = """
    CREATE (n:SkillNode)
    SET n = $props, n.created_at = datetime()
    RETURN n
    """
    result = tx.run(query, props=node_properties(props)).single()
    return node_from_graph(result["n"])


def get_node(tx, node_id: str) -> Optional[dict]:
    query = "MATCH (n:SkillNode {id: $node_id}) RETURN n"
    record = tx.run(query, node_id=node_id).single()
    return node_from_graph(record["n"]) if record else None


def get_nodes(tx, graph_id: str) -> List[dict]:
    query = """
    MATCH (n:SkillNode {graph_id: $graph_id})
    RETURN n
    ORDER BY n.created_at, n.id
    """
    result = tx.run(query, graph_id=graph_id)
    return [node_from_graph(record["n"]) for record in result]


def update_node(tx, node_id: str, patch: dict) -> Optional[dict]:
    """Applies a partial update. Only the given properties change."""
    props = dict(patch)
    if "metadata" in props:
        props["metadata_json"] = json.dumps(props.pop("metadata") or {})
    query = """
    MATCH (n:SkillNode {id: $node_id})
    SET n += $props
    RETURN n
    """
    record = tx.run(query, node_id=node_id, props=props).single()
    return node_from_graph(record["n"]) if record else None


def delete_nodes(tx, node_ids: List[str]) -> int:
    query = """
    MATCH (n:SkillNode)
    WHERE n.id IN $node_ids
    DETACH DELETE n
    RETURN count(n) AS deleted
    """
    record = tx.run(query, node_ids=list(node_ids)).single()
    return record["deleted"] if record else 0


# ---- Edges ----


def create_edge(tx, edge_id: str, graph_id: str, from_node_id: str, to_node_id: str) -> Optional[dict]:
    """
    Creates a LEADS_TO relationship from parent to child. Returns None when
    either end does not exist.
    """
    query = """
    MATCH (a:SkillNode {id: $from_node_id})
    MATCH (b:SkillNode {id: $to_node_id})
    CREATE (a)-[r:LEADS_TO {id: $edge_id, graph_id: $graph_id, created_at: datetime()}]->(b)
    RETURN r.id AS id, r.graph_id AS graph_id, a.id AS from_node_id, b.id AS to_node_id
    """
    record = tx.run(
        query,
        edge_id=edge_id,
        graph_id=graph_id,
        from_node_id=from_node_id,
        to_node_id=to_node_id,
    ).single()
    return dict(record) if record else None


def get_edges(tx, graph_id: str) -> List[dict]:
    query = """
    MATCH (a:SkillNode)-[r:LEADS_TO {graph_id: $graph_id}]->(b:SkillNode)
    RETURN r.id AS id, r.graph_id AS graph_id, a.id AS from_node_id, b.id AS to_node_id
    ORDER BY r.created_at, r.id
    """
    result = tx.run(query, graph_id=graph_id)
    return [dict(record) for record in result]


# ---- Goals ----


def create_goal(tx, props: dict):
    query = """
    CREATE (g:Goal)
    SET g = $props, g.created_at = datetime()
    RETURN g
    """
    result = tx.run(query, props=props).single()
    return dict(result["g"])


def get_goal(tx, goal_id: str) -> Optional[dict]:
    query = "MATCH (g:Goal {id: $goal_id}) RETURN g"
    record = tx.run(query, goal_id=goal_id).single()
    return dict(record["g"]) if record else None


def get_goals_for_user(tx, user_id: int) -> List[dict]:
    query = """
    MATCH (g:Goal {user_id: $user_id})
    RETURN g
    ORDER BY g.created_at DESC
    """
    result = tx.run(query, user_id=user_id)
    return [dict(record["g"]) for record in result]


def delete_goal(tx, goal_id: str):
    tx.run("MATCH (g:Goal {id: $goal_id}) DETACH DELETE g", goal_id=goal_id)


# ---- Schema ----


def create_constraints(tx):
    """Uniqueness constraints on the ids the store looks things up by."""
    for label in ("Graph", "SkillNode", "Goal"):
        tx.run(
            f"CREATE CONSTRAINT {label.lower()}_id IF NOT EXISTS "
            f"FOR (x:{label}) REQUIRE x.id IS UNIQUE"
        )
