"""SOL-X — Declarative Solana programs compiled to Anchor"""

__version__ = "0.1.0"
