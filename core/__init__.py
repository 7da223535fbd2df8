"""Core workflow for the DZap testnet bridge bot."""
