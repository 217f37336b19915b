"""Built-in rule data files."""
