"""
Scan decoder test suite

Structure:
- unit/: tests for individual modules (codec, layouts, reassembler, projection)
- integration/: packets -> images -> projector -> reprojected rasters, and the CLI
- helpers.py: synthetic packets and deterministic ephemerides shared by both
"""
