"""Test suite for the document pub.

Unit tests cover stores, the workspace registry, ingestion, queries and
demo seeding; integration tests drive the HTTP API. To run the tests,
execute `pytest` from the project root.
"""
