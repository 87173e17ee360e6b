"""
Data layer and HTTP API for a personal project showcase.

The whole collection of project records lives in one JSON document in blob
storage. This package provides the guarded store for that document, schema
normalization for records written by older versions, image asset reference
tracking, and a FastAPI application exposing them.
"""
