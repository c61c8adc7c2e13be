"""
Package marker for the yearly name-file ingestion modules in `affirm_name.ingestion`.
It groups related modules under a stable import path and keeps package boundaries explicit.
Most functionality lives in the sibling modules; this file intentionally stays lightweight.
"""
