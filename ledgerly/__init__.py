"""
Ledgerly - Source Package

A personal finance tracker that keeps its ledger as JSON files in a
GitHub repository instead of a database.

DESIGN PRINCIPLES:
1. The repository is the source of truth; memory is a working copy
2. Fail early, fail visibly
3. No silent corrections
4. Every write must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Ledgerly Team"
