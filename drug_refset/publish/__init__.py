"""Compression, upload and indexing of processed releases."""
