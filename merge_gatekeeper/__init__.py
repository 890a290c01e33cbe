"""Wait for all other commit statuses and check runs on a ref to pass before allowing a merge."""

__version__ = "1.0.0"