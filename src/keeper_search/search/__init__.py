"""
In-memory search indexing and query engine package.

This package provides a pure-Python search stack:
- analyzers: Tokenizers and filters (whitespace split, lowercase, stop words)
- fuzzy: Edit distance and similarity-based fuzzy contributions
- models: Indexed document representation
- document_index: Build-then-swap document store
- scoring: Weighted multi-field relevance scoring
- highlight: Marked fragment extraction for snippets
- pipeline: Filter, sort and pagination over result items
"""
