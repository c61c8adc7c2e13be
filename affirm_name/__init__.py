"""
Package marker for the name-frequency import code under `affirm_name`.
It groups related modules under a stable import path and keeps package boundaries explicit.
Most functionality lives in the sibling modules; this file intentionally stays lightweight.
"""
