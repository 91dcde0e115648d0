"""Datastore services -- PostgreSQL (relational), Redis (cache), Neo4j (graph), Elasticsearch (search).

Submodules are imported directly (``from services.lifecycle import DatastoreManager``);
``config`` depends on ``services.base``, so this package must not import them eagerly.
"""
