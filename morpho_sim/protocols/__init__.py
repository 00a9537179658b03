"""Protocol-specific implementations.

This module contains protocol-specific configurations and IRM
implementations for supported DeFi protocols.

Currently supported:
- Morpho Blue (morpho_sim.protocols.morpho)
"""
