"""Insights module: execution statistics aggregated per workflow."""
