"""SM2 elliptic-curve signatures and encryption, and the SM3 hash function."""

__version__ = "0.1.0"
__all__ = ["sm2", "sm3", "ec", "der"]