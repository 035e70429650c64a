"""Command-line interface for crake-wallet."""
