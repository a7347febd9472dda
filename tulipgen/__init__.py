"""Machine-code assemblers, argument layouts and hook-chain bookkeeping for function hooks."""

__version__ = "0.1.0"