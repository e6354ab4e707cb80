"""Command-line front end for logid_core.

- `logid query LOGID --region us [--psm NAME ...]`
- `python -m logid_cli ...` runs the same entry point.
"""
