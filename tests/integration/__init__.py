"""Integration tests for the export and publish pipelines.

These tests run storage markup through the full export pipeline and the
resulting template markdown back through the publish pipeline, checking
that the page survives the round trip. No Confluence instance is needed.
"""
