"""Configuration for Wingfoil Analyser."""
