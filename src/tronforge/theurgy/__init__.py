"""
Theurgy - Network-facing command implementations for tronforge.

Each module provides top-level CLI commands:
- invoke: Sign and broadcast contract calls; run read-only calls
- token:  TRC-20 balance and transfer
"""
