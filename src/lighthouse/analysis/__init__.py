"""Cost aggregation, scoring, assembly and the portfolio analysis entry point."""
