"""Core configuration for SignalMarket."""
