"""glycopaint CLI: Click commands with Rich output."""
