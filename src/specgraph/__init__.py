"""
specgraph — package root

File: src/specgraph/__init__.py

Purpose
- Document graph engine for interlinked requirement, design and implementation specs.

Functional requirements
- Must not have side effects at import time (no config loading, no logging init).
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
