"""klay -- a knowledge pipeline: ingest, chunk, embed, store, catalog, retrieve."""

__version__ = "0.1.0"
