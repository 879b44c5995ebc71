"""
patchrun — runtime preparation for patch-validation runs

File: src/patchrun/__init__.py
Last updated: 2026-10-18

Purpose
- Package root. Assembles the classpath, byte source and patch-generation plugin that a
  patch-validation engine consumes.

Functional requirements
- Must not have side effects at import time (no config loading, no logging init).
"""

__version__ = "0.4.0"

__all__ = ["__version__"]
