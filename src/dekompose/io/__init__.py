"""I/O — manifest parsing, rule configuration, compose and report output."""
