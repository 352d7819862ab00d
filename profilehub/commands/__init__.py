"""Click commands for the profilehub CLI."""
